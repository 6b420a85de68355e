"""Read and normalize the hit gene list.

One identifier per line. Blank lines are ignored, the caller's rewrite table
is applied, and duplicates are collapsed keeping the first occurrence.
"""

from collections.abc import Iterable, Mapping
from pathlib import Path

import structlog

from ora_pipeline.errors import InputError

logger = structlog.get_logger()


def apply_rewrites(entry: str, rewrites: Mapping[str, str]) -> str:
    """Apply substring rewrites in table order and strip the result.

    Args:
        entry: Raw identifier string
        rewrites: Substring -> replacement mapping, e.g.
            {"steroid sulfatase, mouse": "Sts"}

    Returns:
        Rewritten, stripped identifier
    """
    for pattern, replacement in rewrites.items():
        if pattern and pattern in entry:
            entry = entry.replace(pattern, replacement)
    return entry.strip()


def normalize_gene_list(
    lines: Iterable[str],
    rewrites: Mapping[str, str] | None = None,
) -> list[str]:
    """Normalize raw lines into a deduplicated gene list.

    Args:
        lines: Raw lines (trailing newlines allowed)
        rewrites: Optional substring rewrite table

    Returns:
        Non-empty identifiers in first-occurrence order
    """
    rewrites = rewrites or {}
    seen: set[str] = set()
    genes: list[str] = []

    for line in lines:
        entry = line.strip()
        if not entry:
            continue
        entry = apply_rewrites(entry, rewrites)
        # A rewrite may map an entry to nothing
        if not entry or entry in seen:
            continue
        seen.add(entry)
        genes.append(entry)

    return genes


def read_gene_list(
    path: Path | str,
    rewrites: Mapping[str, str] | None = None,
) -> list[str]:
    """Read a gene list file and normalize it.

    Args:
        path: Text file with one identifier per line
        rewrites: Optional substring rewrite table

    Returns:
        Deduplicated gene identifiers

    Raises:
        InputError: If the file is missing, unreadable, or yields no genes
    """
    path = Path(path)

    if not path.is_file():
        raise InputError(f"Gene list not found: {path}", stage="input")

    try:
        with path.open("r", encoding="utf-8") as f:
            lines = f.readlines()
    except (OSError, UnicodeDecodeError) as e:
        raise InputError(f"Cannot read gene list {path}: {e}", stage="input") from e

    genes = normalize_gene_list(lines, rewrites)

    logger.info(
        "gene_list_loaded",
        path=str(path),
        raw_lines=len(lines),
        unique_genes=len(genes),
    )

    if not genes:
        raise InputError(f"Gene list is empty after normalization: {path}", stage="input")

    return genes
