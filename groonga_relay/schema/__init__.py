"""
Groonga Schema Inference

Keeps a local picture of one Groonga table and grows it as records arrive.

This package provides:
- Column type guessing from sample values (Time, Int32, Int64, Float, WGS84GeoPoint, Text)
- Scalar/vector detection
- Lazy discovery of an existing table and its columns
- Additive creation of missing tables and columns

Basic usage:
    from groonga_relay.schema.schema import Schema

    schema = Schema(client, "Logs")
    schema.update([{"host": "web1", "status": 200}])

    for name, column in schema.columns.items():
        print(f"  {name}: {column.value_type} (vector={column.vector})")
"""
