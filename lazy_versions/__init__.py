"""lazy-versions: version the packages of a monorepo from change records."""
