"""Execution of diagnostics on the primary or across the whole cluster."""
