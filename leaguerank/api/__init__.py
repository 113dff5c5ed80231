"""HTTP API for rankings, backtests and parameter learning."""
