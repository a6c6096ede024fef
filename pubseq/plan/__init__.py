"""Release plan: the ordered, immutable list of publish units for one run."""
