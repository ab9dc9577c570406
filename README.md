# brio

`brio` is a small library for running cooperating agents. It has no command of
its own: you import it and wire the pieces together.

- **Supervision** (`brio.supervisor`): a `Supervisor` takes pending tasks from a
  `TaskRepository`, hands each to an agent through an `AgentDispatcher`, and
  records the task as assigned or failed.
- **Service mesh** (`brio.mesh`, `brio.kernel.host`): components register an
  `asyncio.Queue` inbox with `BrioHostState.register_component`; callers reach
  them by name with `BrioHostState.mesh_call`. Payloads are `Json` or `Binary`.
- **Scoped SQL state** (`brio.kernel.store`, `brio.kernel.policy`): `SqlStore`
  runs SQL on a SQLite connection after a `QueryPolicy` has authorized it.
- **Sandboxed file sessions** (`brio.kernel.vfs`): `SessionManager` copies a
  directory into a private workspace and later writes the differences back.
- **Inference** (`brio.kernel.inference`): the `LLMProvider` interface and
  `OpenAIProvider` for OpenAI-compatible chat completion endpoints.
- **Live updates** (`brio.kernel.broadcaster`, `brio.kernel.connection`,
  `brio.kernel.server`): a `Broadcaster` fans JSON Patch messages out to
  WebSocket clients served by an aiohttp application.
- **Configuration and audit** (`brio.kernel.config`, `brio.kernel.audit`).

Install with `pip install .`, or `pip install .[test]` to run the tests with
pytest.

## Domain types

```python
from brio.supervisor.domain import AgentId, Priority, Task, TaskId, TaskStatus

str(TaskId(42))                 # "task_42"
TaskStatus.parse("ASSIGNED")    # TaskStatus.ASSIGNED; case is ignored
Priority(100) < Priority(200)   # True; Priority.MIN, .MAX, .DEFAULT (128)
AgentId("")                     # ValueError: AgentId cannot be empty
Task(TaskId(1), "Fix bug").is_pending()   # True
```

An unknown status raises `ParseStatusError` (a `ValueError`). `TaskId` must fit
in 64 unsigned bits and `Priority` in 0–255.

## Supervising tasks

```python
from brio.supervisor.orchestrator import Supervisor

supervisor = Supervisor(repository, dispatcher)
dispatched = supervisor.poll_pending_tasks()
```

Every task is sent to the agent `agent_coder`. For each pending task:

- `DispatchResult.ACCEPTED`: the task is marked assigned and counted.
- `DispatchResult.AGENT_BUSY`: the task stays pending.
- a `MeshError` from the dispatcher, or a failure marking the task assigned:
  the task is marked failed with the error text; failures while marking it
  failed are ignored.

A failure fetching tasks raises `RepositoryFailure`.

`BindingTaskRepository` and `BindingAgentDispatcher` talk to the host through
`brio.supervisor.bindings` (`query`, `execute`, `call`). When no host backend
is attached, queries return no rows, statements affect no rows and every call
is answered `{"status":"accepted"}`. `BindingAgentDispatcher(call=...)` accepts
any callable `(target, method, payload) -> payload` instead.
`encode_dispatch_request(task)` gives the JSON text sent to the agent's
`execute` method; a reply containing `accepted` or `busy` decides the result,
anything else raises `AgentError`, and a binary reply raises
`SerializationError`. `brio.supervisor.orchestrator.run()` runs one cycle with
the binding-backed parts and returns the count, or `-1` on failure.

## Host state and the mesh

```python
import asyncio
from brio.kernel.host import BrioHostState
from brio.mesh import Json

async def main(provider):
    with BrioHostState("sqlite::memory:", provider) as host:
        inbox = asyncio.Queue()
        host.register_component("echo-agent", inbox)

        async def agent():
            message = await inbox.get()
            message.reply(message.payload)   # or message.fail("reason")

        asyncio.create_task(agent())
        reply = await host.mesh_call("echo-agent", "echo", Json("hi"))
```

Database URLs are `sqlite::memory:` or `sqlite://<path>` with an optional
`?mode=` (default `rw`). An unknown target or an error reply raises
`MeshCallError`. The host also offers `db`, `broadcaster`, `sessions`,
`inference`, `get_store(scope)`, `broadcast_patch(patch)`,
`begin_session(path)`, `commit_session(session_id)` and `close()`; it accepts
`session_root=` to choose where session workspaces live.

## Scoped SQL access

```python
from brio.kernel.policy import PrefixPolicy, referenced_tables

policy = PrefixPolicy()
policy.authorize("agent_1", "SELECT * FROM agent_1_data")    # allowed
policy.authorize("agent_1", "SELECT * FROM system_config")   # ScopeViolationError
referenced_tables("SELECT * FROM a JOIN b ON a.id = b.id")   # ["a", "b"]
```

Every table a statement names, including joins, `INSERT INTO`, `UPDATE` and
`DROP TABLE`, must start with `<scope>_`. Text that cannot be read as SQL
raises `PolicyParseError`.

`SqlStore(connection, policy)` has the coroutines `query(scope, sql, params)`,
returning `GenericRow` objects whose values are all strings (SQL `NULL` becomes
`"NULL"`), and `execute(scope, sql, params)`, returning the number of affected
rows. A refused statement raises `StorePolicyError`; a database failure raises
`StoreDatabaseError`.

## File sessions

```python
from brio.kernel.vfs import SessionManager

manager = SessionManager()                 # workspaces under <tempdir>/brio
session_id = manager.begin_session("project")
workdir = manager.session_path(session_id)
# ... edit files in workdir ...
manager.commit_session(session_id)
```

Committing compares files by SHA-256 (`compute_diff`) and copies added and
modified files into the base and deletes removed ones (`apply_changes`).
Workspaces are not deleted after a commit. Errors raise `SessionError`.

## Inference

```python
from brio.kernel.inference import ChatRequest, Message, OpenAIConfig, OpenAIProvider, Role

provider = OpenAIProvider(OpenAIConfig(api_key="placeholder", base_url="https://api.example.com/v1/"))
response = await provider.chat(ChatRequest("model-name", [Message(Role.USER, "Hello")]))
```

It posts to `<base_url>chat/completions` and returns the first choice as a
`ChatResponse` with optional `Usage`. HTTP 429 raises `RateLimitError`; a 400
mentioning `context_length_exceeded` raises `ContextLengthExceededError`;
connection failures raise `NetworkError`; other failures raise `ProviderError`.

## Broadcasting and the control plane

```python
from brio.kernel.broadcaster import Broadcaster
from brio.kernel.ws_types import PatchMessage, WsPatch

broadcaster = Broadcaster()
with broadcaster.subscribe() as receiver:
    broadcaster.broadcast(PatchMessage(WsPatch([{"op": "add", "path": "/a", "value": 1}])))
    message = await receiver.recv()
```

Each subscriber buffers up to 256 messages; one that falls further behind gets
a `ChannelClosedError` from `recv`. `ShutdownMessage` is sent to clients as
`{"type":"shutdown"}`.

`brio.kernel.server.create_app(broadcaster)` builds an aiohttp application with
`/health/live`, `/health/ready` (both answer `OK`), `/metrics` and `/ws`.
`run_server(settings, broadcaster)` serves it on `settings.server` until
cancelled; the host must be an IP address. Each WebSocket client is served by a
`Connection`, which relays broadcasts, answers pings and pings every 30 seconds.

## Configuration

`Settings.load(environ=None)` starts from defaults and applies environment
variables named `BRIO_<SECTION>__<KEY>` (case-insensitive), for example
`BRIO_SERVER__PORT` or `BRIO_DATABASE__URL`.

| Setting | Variable | Default |
| --- | --- | --- |
| Host | `BRIO_SERVER__HOST` | `127.0.0.1` |
| Port | `BRIO_SERVER__PORT` | `9090` |
| Service name | `BRIO_TELEMETRY__SERVICE_NAME` | `brio-kernel` |
| OTLP endpoint | `BRIO_TELEMETRY__OTLP_ENDPOINT` | none |
| Sampling ratio | `BRIO_TELEMETRY__SAMPLING_RATIO` | `1.0` |
| Database URL | `BRIO_DATABASE__URL` | required |

Missing or malformed values raise `ConfigError`.

## Audit

`brio.kernel.audit.log_audit(event)` logs a `SystemStartup`, `SystemShutdown`,
`AccessDenied` or `ConfigChanged` event on the `audit` logger, with the event
attached to the record as `audit_event`.

## Errors

| Area | Base class |
| --- | --- |
| Repository | `RepositoryError` |
| Mesh client | `MeshError` |
| Supervisor | `SupervisorError` |
| Inference | `InferenceError` |
| Policy | `PolicyError` |
| Store | `StoreError` |
| WebSocket | `WsError` |
| File sessions | `SessionError` |
| Configuration | `ConfigError` |
| Mesh calls | `MeshCallError` |

## What this package does not do

- It provides no command-line program; you start the server yourself with
  `run_server`.
- It does not load or run sandboxed agent components; agents are ordinary
  Python code reading a mesh inbox.
- `/metrics` answers with an empty body: no metrics are collected, and there is
  no profiling endpoint.
- It sets up no tracing or telemetry export; the telemetry settings are only
  read, not acted on.