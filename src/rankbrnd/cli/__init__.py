"""Command-line interface: ``rankbrnd db|queue|worker|serve``."""
