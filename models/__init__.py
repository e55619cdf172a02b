"""
Models package for the Resource Contention & Deadlock Simulator.
Contains run configuration, resource units and pool, processes and the
simulation state context.
"""
