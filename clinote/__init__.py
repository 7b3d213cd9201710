"""
Clinote note engine package.

Design intent:
- Keep clinical templates, markdown notes and LLM extraction results in one consistent shape.
- Keep domain modules (template/note) independent from transport and storage.
"""
