"""
Algorithms package for the Resource Contention & Deadlock Simulator.
Contains backoff, allocation policies, the task state machine, and deadlock
detection and resolution.
"""
