"""Command line tool for running the nginx-operator reconcilers locally."""
