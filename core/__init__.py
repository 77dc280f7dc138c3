"""Runtime wiring: clock, events, config, logging and ticking."""
