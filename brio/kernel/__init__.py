"""Host-side services: host state, SQL store and policy, file sessions, inference, broadcasting, WebSocket server, configuration and audit."""