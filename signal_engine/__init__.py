"""Weighted technical-indicator signal engine with backtesting and adaptive weight learning."""
