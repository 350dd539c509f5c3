"""Command-line interface for llm-grid."""
