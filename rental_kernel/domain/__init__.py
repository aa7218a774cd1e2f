"""Pure domain code: clock, calendar arithmetic, coverage, result types."""
