"""HR engine: attendance, leave, claims and payroll linkage core."""

__version__ = "0.1.0"
