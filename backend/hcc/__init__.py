"""HCC clinic backend: appointments, prescriptions and drugstore dispensing."""

__version__ = "0.1.0"
