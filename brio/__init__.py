"""Agent orchestration kernel: task supervision, mesh routing, scoped SQL state, file sessions and broadcasting."""

__version__ = "0.1.0"