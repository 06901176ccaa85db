"""Structure file loading, reporting and export."""
