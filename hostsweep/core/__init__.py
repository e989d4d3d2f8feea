"""Cross-cutting infrastructure: logging, errors and concurrency limits."""
