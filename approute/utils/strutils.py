import re
import unicodedata

_PATH_SEPARATORS = re.compile(r"[\\/]")


def sort_key(s: str) -> str:
    """
    Collation key that compares strings the way a human reads them: case and
    accents are ignored, so "Émile", "emile" and "EMILE" sort together.
    """
    decomposed = unicodedata.normalize("NFKD", s)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()


def has_path_separator(s: str) -> bool:
    return bool(_PATH_SEPARATORS.search(s))


def last_path_segment(path: str) -> str:
    """
    Last non-empty component of a Windows or POSIX path, or the input itself
    if there is none.
    """
    parts = [p for p in _PATH_SEPARATORS.split(path) if p]
    return parts[-1] if parts else path
