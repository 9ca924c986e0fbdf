from __future__ import annotations

from .encode import build_encode
from .extract import build_extract
from .sort import build_sort

BUILTINS = {
    "extract": build_extract,
    "encode": build_encode,
    "sort": build_sort,
}
