"""HTTP API for browsing stored definitions and classifying sources into modules."""
