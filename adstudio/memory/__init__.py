"""Session memory package.

Architectural role:
    Holds the bounded generation history (`history_cache`). Memory is
    process-local; nothing persists beyond the process lifetime.
"""
