"""Code shared between the research backend and the execution viewer."""
