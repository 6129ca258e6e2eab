"""Tag definition and utilities."""

from collections.abc import Callable, Iterable

_ESCAPE_MAP = {"\\": "\\\\", ":": "\\:"}

TagLike = str | tuple[str, ...]


def define_tags(
    definitions: dict[str, Callable[..., tuple[str, ...]]],
) -> dict[str, Callable[..., str]]:
    """
    Define all tags in a centralized location.

    Example:
        tags = define_tags({
            "node": lambda id: ("node", id),
            "node_list": lambda: ("node_list",),
        })

        tags["node"]("5")       # "node:5"
        tags["node_list"]()     # "node_list"
    """
    result: dict[str, Callable[..., str]] = {}
    for name, fn in definitions.items():

        def make_tag(*args: str, _fn: Callable[..., tuple[str, ...]] = fn) -> str:
            return serialize_tag(_fn(*args))

        result[name] = make_tag
    return result


def serialize_tag(tag: tuple[str, ...]) -> str:
    """Serialize tag tuple to its string form."""

    def escape(part: str) -> str:
        result = part
        for char, escaped in _ESCAPE_MAP.items():
            result = result.replace(char, escaped)
        return result

    return ":".join(escape(str(p)) for p in tag)


def normalize_tags(tags: Iterable[TagLike]) -> list[str]:
    """De-duplicate and sort tags so snapshots compare and store stably.

    Plain strings are kept as-is, tuples are serialized with serialize_tag().
    """
    if isinstance(tags, str):
        raise TypeError("tags must be an iterable of tags, not a single string")
    result: set[str] = set()
    for tag in tags:
        if isinstance(tag, tuple):
            result.add(serialize_tag(tag))
        elif isinstance(tag, str):
            result.add(tag)
        else:
            raise TypeError(f"Cache tags must be strings, got {type(tag).__name__}")
    return sorted(result)
