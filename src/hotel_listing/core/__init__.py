"""Cross-cutting helpers: errors, logging and timings."""
