from . import emit_terms, fs, io_glossary, io_manifest

__all__ = ["emit_terms", "fs", "io_glossary", "io_manifest"]
