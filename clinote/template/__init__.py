"""
Template boundary for the clinote engine.

Design intent:
- Define the structural contract (locked headers, named sections) every note follows.
- Fail loudly on broken templates before any encode/decode happens.
"""
