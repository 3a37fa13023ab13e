"""Row mapping, enrichment, payload building and the submission pipeline."""
