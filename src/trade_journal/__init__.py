__all__ = [
    "settings",
    "journal",
    "summary",
]
