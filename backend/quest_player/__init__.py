"""Quest lesson player backend: gated, resumable step-by-step lesson traversal."""
