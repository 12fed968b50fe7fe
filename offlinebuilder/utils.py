"""General utils functions"""

import hashlib
import re
from collections import Counter
from pathlib import Path
from typing import Iterable, List, Union


# https://stackoverflow.com/a/3431838
def sha256sum(fname: Union[str, Path]) -> str:
    hash_sha = hashlib.sha256()
    with open(fname, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            hash_sha.update(chunk)
    return hash_sha.hexdigest()


def short_hash(text: str, length: int = 8) -> str:
    """Stable short hex digest of a string, for disambiguating names."""
    return hashlib.sha1(text.encode("utf-8")).hexdigest()[:length]


# from: https://stackoverflow.com/a/1094933
def sizeof_fmt(num: float, suffix: str = "B"):
    if abs(num) < 1024:
        return f"{int(num)}{suffix}"
    for unit in ("", "Ki", "Mi", "Gi", "Ti", "Pi", "Ei", "Zi"):
        if abs(num) < 1024:
            return f"{num:3.1f}{unit}{suffix}"
        num /= 1024
    return f"{num:.1f}Yi{suffix}"


_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._+-]+")


def safe_filename(name: str) -> str:
    """Replace characters that are awkward in file names with underscores."""
    return _UNSAFE_CHARS.sub("_", name).strip("._") or ""


def find_duplicates(items: Iterable[str]) -> List[str]:
    """Return the sorted values occurring more than once."""
    counts = Counter(items)
    return sorted(item for item, count in counts.items() if count > 1)
