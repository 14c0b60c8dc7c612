"""NOVA-DEFENSE web application — REST and WebSocket surfaces around the engine."""
