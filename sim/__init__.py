"""Settlement simulation subsystems: ledger, land, calendar, catalog,
buildings, population, progression, events and the tick scheduler."""
