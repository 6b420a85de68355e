"""Load gene-set libraries from GMT files."""

from pathlib import Path

import structlog

from ora_pipeline.config.schema import LibraryConfig
from ora_pipeline.errors import ConfigurationError
from ora_pipeline.gene_mapping.provider import AnnotationProvider
from ora_pipeline.libraries.models import GeneSetLibrary, GeneSetTerm

logger = structlog.get_logger()

# GMT description placeholders that carry no information
EMPTY_DESCRIPTIONS = {"", "na", "n/a", "none"}


def parse_gmt(path: Path | str) -> list[tuple[str, str, list[str]]]:
    """Parse a GMT file into (term_id, description, members) records.

    Each line: term_id <TAB> description <TAB> member1 <TAB> member2 ...
    Blank lines and lines starting with '#' are skipped. A blank or "NA"
    description falls back to the term ID.

    Raises:
        ConfigurationError: If the file is missing or a line has no term ID
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(f"Gene set file not found: {path}", stage="libraries")

    records = []
    with path.open("r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.rstrip("\n\r")
            if not line.strip() or line.startswith("#"):
                continue
            fields = line.split("\t")
            term_id = fields[0].strip()
            if not term_id:
                raise ConfigurationError(
                    f"{path}:{line_no}: missing term ID",
                    stage="libraries",
                )
            description = fields[1].strip() if len(fields) > 1 else ""
            if description.lower() in EMPTY_DESCRIPTIONS:
                description = term_id
            members = [m.strip() for m in fields[2:] if m.strip()]
            records.append((term_id, description, members))

    return records


def load_gmt(
    path: Path | str,
    name: str,
    provider: AnnotationProvider | None = None,
    id_type: str = "canonical",
) -> GeneSetLibrary:
    """Load a GMT file as a GeneSetLibrary.

    Args:
        path: GMT file path
        name: Library name
        provider: Needed when id_type is "symbol" to translate members
        id_type: "canonical" if members are canonical IDs, "symbol" if they
            are gene symbols

    Returns:
        GeneSetLibrary with canonical members. Terms left without members
        after translation are dropped.
    """
    records = parse_gmt(path)

    if id_type == "symbol":
        if provider is None:
            raise ConfigurationError(
                "Symbol-keyed library needs an annotation provider",
                stage="libraries",
                library=name,
            )
        all_symbols = sorted({m for _, _, members in records for m in members})
        symbol_map = provider.resolve_by_symbol(all_symbols)
        logger.info(
            "library_symbols_translated",
            library=name,
            symbols=len(all_symbols),
            resolved=len(symbol_map),
        )
        records = [
            (term_id, description, [symbol_map[m] for m in members if m in symbol_map])
            for term_id, description, members in records
        ]
    elif id_type != "canonical":
        raise ConfigurationError(
            f"Unknown id_type '{id_type}'",
            stage="libraries",
            library=name,
        )

    terms = [
        GeneSetTerm(term_id=term_id, description=description, members=frozenset(members))
        for term_id, description, members in records
        if members
    ]
    dropped = len(records) - len(terms)

    library = GeneSetLibrary(name, terms)
    logger.info(
        "library_loaded",
        library=name,
        path=str(path),
        terms=len(library),
        dropped_empty=dropped,
    )
    return library


def load_library(
    config: LibraryConfig,
    provider: AnnotationProvider | None = None,
) -> GeneSetLibrary:
    """Load the library described by a LibraryConfig.

    When config.terms is set the library is reduced to a focused panel of
    those terms. Requested terms missing from the file are logged.
    """
    library = load_gmt(config.path, config.tag, provider=provider, id_type=config.id_type)

    if config.terms is not None:
        missing = [t for t in config.terms if t not in library]
        if missing:
            logger.warning(
                "panel_terms_missing",
                library=config.tag,
                missing=missing,
            )
        library = library.subset(config.terms)
        logger.info("focused_panel_built", library=config.tag, terms=len(library))

    return library
