"""dialogueforge: branching dialogue graphs, runtime and composition compiler."""

__version__ = "0.1.0"
