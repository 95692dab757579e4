"""Command line tools for pysolarlink."""
