"""
Shared Kernel

Base classes and utilities shared across the reservation apps: domain
building blocks, the error taxonomy, the unit of work and the message bus.
"""
