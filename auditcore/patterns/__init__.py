"""Pattern dictionary: immutable, compiled-once rule tables."""

from auditcore.patterns.catalog import (
    Catalog,
    CompiledPattern,
    OmissionRule,
    PatternRule,
    StyleLexicon,
    catalog,
    compile_phrase,
    load_catalog,
)

__all__ = [
    "Catalog",
    "CompiledPattern",
    "OmissionRule",
    "PatternRule",
    "StyleLexicon",
    "catalog",
    "compile_phrase",
    "load_catalog",
]
