"""Scene geometry derived from the simulation on every tick."""
