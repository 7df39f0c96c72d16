"""HTTP API over the monitoring engine."""
