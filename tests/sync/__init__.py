"""
Test suite for the registry synchronization system.

Covers path classification, ancestor lookup, the document store, both
registry editors, the change router, the maintenance debounce, the
watchdog feed and the engine wiring.
"""
