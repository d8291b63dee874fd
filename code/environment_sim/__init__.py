from .models import EnvironmentReport
from .simulator import EnvironmentSimulator, simulate_environment

__all__ = [
    "EnvironmentReport",
    "EnvironmentSimulator",
    "simulate_environment",
]
