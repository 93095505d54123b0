# Targeted imports (e.g. `from flagport.core.ast_parser import parse_source`)
# should not pull in the whole migration pipeline.
