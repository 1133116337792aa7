"""HTTP surface of photojournal: the FastAPI app and a requests-based client."""
