"""histepi: historically-constrained disease simulation for world-simulation games.

A character-level epidemiology engine coupling:
  - Era / region / year eligibility of maladies, including the 1492
    Columbian Exchange restriction between hemispheres
  - Spawn-time assignment of infections and prior immunity
  - Proximity, direct-contact and terrain transmission
  - Daily clinical course: incubation → symptoms → recovery, renewal or death
  - Period-appropriate treatment with side effects

The host game loop decides when each operation runs; this package decides
what happens.
"""

__version__ = "0.1.0"
