from typing import Any


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def strip_empty(value: Any) -> Any:
    """Recursively drop None and blank-string entries from dicts and lists.

    Dicts that end up empty are dropped from their parent as well, so a
    partially filled provider payload never persists placeholder keys.
    """
    if isinstance(value, dict):
        cleaned = {}
        for key, item in value.items():
            item = strip_empty(item)
            if _is_blank(item) or (isinstance(item, dict) and not item):
                continue
            cleaned[key] = item
        return cleaned
    
    if isinstance(value, list):
        return [strip_empty(item) for item in value if not _is_blank(item)]
    
    return value
