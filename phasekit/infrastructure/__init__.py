"""
Infrastructure layer: configuration, logging and telemetry.
"""
