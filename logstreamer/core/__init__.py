"""Log synchronization core: build tracking, poll scheduling, event loop."""
