"""Cross-dialect schema mapping and record marshalling.

This package converts between relational database values and a portable,
canonical record representation, including:

- Canonical schema inference from driver column metadata
- Row to record conversion (read path)
- Record to bound statement conversion (write path)
- Write-compatibility validation of a schema against a live table

Usage:
    from sqlmarshal.dialects import DialectName, get_dialect

    dialect = get_dialect(DialectName.POSTGRESQL)
    schema = dialect.schema_reader.get_schema_from(columns)

Modules:
    schema: Canonical types, fields, records and the default schema reader
    marshal: Record readers and writers
    validation: Fields validator and incompatibility reporting
    dialects: Per-database capability bundles and the dialect registry
    connectors: Table introspection, batched sink and streaming source
"""

__version__ = "0.3.0"
