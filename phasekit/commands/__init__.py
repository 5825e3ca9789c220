"""Click commands for the phasekit CLI."""
