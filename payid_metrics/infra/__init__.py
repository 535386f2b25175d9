"""Infrastructure adapters: logging, timers, push gateways and the metrics manager."""
