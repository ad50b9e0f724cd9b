"""
Shared pieces of the functional test runner: base test class, runtime and logging.
"""
