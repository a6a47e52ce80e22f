"""Service layer: form, search, map lifecycle, overlay and PDF download."""
