"""retently-cli -- command-line client for the Retently NPS/CSAT/CES feedback API.

The CLI lists customers, survey responses, campaigns, companies and aggregate
scores, and exposes a small set of write operations (create customers, delete
a customer, send a survey, tag a response).  Every command goes through a
shared request layer: an in-memory TTL response cache sitting in front of an
HTTP executor that tracks rate-limit headers, enforces a request deadline and
raises typed errors.

Typical usage::

    export RETENTLY_API_KEY=...
    retently-cli list-feedback --limit 20 --sort desc
    retently-cli get-nps-score --json

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models for settings and operation results.
    config: XDG-aware settings loading and credential resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
    cache: In-memory TTL cache and cache-key derivation.
    client: HTTP executor and the Retently API client.
"""

__version__ = "0.3.0"
