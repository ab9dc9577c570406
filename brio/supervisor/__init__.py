"""Supervisor: task domain types, host bindings, repository, agent dispatch and orchestration."""