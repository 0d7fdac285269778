"""Domain layer: vocabulary, records and ports. No framework imports."""
