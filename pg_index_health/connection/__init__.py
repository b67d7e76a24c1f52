"""Hosts, connections and primary tracking for a PostgreSQL cluster."""
