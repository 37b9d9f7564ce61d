"""Selection analysis - tallies and uniformity checks."""

from .fairness import SelectionTally, UniformityResult, uniformity_test, run_trials

__all__ = ['SelectionTally', 'UniformityResult', 'uniformity_test', 'run_trials']
