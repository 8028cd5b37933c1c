"""Host and network adapters implementing the service protocols."""
