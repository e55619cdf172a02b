"""
Utilities for the Resource Contention & Deadlock Simulator.
Contains the step logger and the JSON config loader.
"""
