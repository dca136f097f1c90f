"""
Tycoon market — stock-market simulation core for the business tycoon game.

Layers:
  market/   — Pure data: models, static catalog, clock, errors
  sim/      — Simulation services (tick engine, betting, order book, ledger)
  feeds/    — Best-effort external price-history clients
"""
