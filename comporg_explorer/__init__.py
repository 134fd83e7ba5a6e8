"""CompOrg Core Explorer: step-by-step CPU instruction-cycle and cache-access simulators."""

__version__ = "0.1.0"
