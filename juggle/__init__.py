"""juggle - agent iteration loop over a queue of work items ("balls")."""

__version__ = "0.4.0"
