"""
Analysis package for the Resource Contention & Deadlock Simulator.
Contains the event log and the metrics aggregator.
"""
