"""
Note content boundary for the clinote engine.

Design intent:
- Translate between section content maps and persisted markdown without losing user text.
- Merge LLM extraction results without clobbering sections under active edit.
- Report missing required content as data, never as exceptions.
"""
