"""Age-structured SIR model with interventions, parameter management and stochastic optimisers."""

__version__ = "0.1.0"