"""Applytics: event ingestion with cumulative stats and on-demand timeseries."""
