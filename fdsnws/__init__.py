"""FDSN event web service: parameter validation and streaming feed dispatch."""
