# apptoolkit

Small, independent helpers for writing database-backed services and
testing them. Everything is plain standard-library Python; the package
has no runtime dependencies.

## What is in the package

- **`apptoolkit.fieldmask`** – `merge_with_mask(source, dest, mask)` copies
  the fields named by dotted paths (`"FieldA.FieldTwo"`) from one dataclass
  instance into another of the same type. Missing intermediate objects in
  `dest` are created empty. Problems raise `FieldMaskError`.
- **`apptoolkit.migrations`** – `max_version_from(path)` returns a
  `VersionExactly` validator for the highest numbered `NN_name.*.sql` file in
  a directory; `version_exactly(n)` and `version_range(lower, upper)` build
  validators directly. `verify_migration_version(connection, validator)` reads
  the `schema_migrations` table through a DB-API connection and raises
  `MigrationVersionError` for a wrong version or a dirty database.
- **`apptoolkit.transaction`** – a `Transaction` opens at most one database
  transaction per request (`begin`, `begin_with_options`), and offers
  `commit`, `rollback` and `add_after_commit_hook`. `use_transaction(txn)` sets
  it for the current context; `from_context`, `begin_from_context` and
  `begin_with_options_from_context` reach it from anywhere inside.
  `transaction_interceptor(db)` wraps a handler so that each call gets its own
  transaction, rolled back if the handler raises and committed otherwise.
- **`apptoolkit.health`** – `ChecksHandler` and `ContextChecksHandler` keep
  liveness and readiness checks and answer probes: `handle(...)` returns the
  status code (200, 503, 405 for methods other than GET, 404 for other
  paths), `register_handler(routes)` adds the endpoints to a path mapping,
  and each handler is itself a WSGI application. Set `fail_fast=True` to stop
  at the first failing check.
- **`apptoolkit.checks`** – ready-made checks: `dns_probe_check(host, timeout)`
  and `http_get_check(url, timeout)` (never follows redirects; anything but
  200 fails). A failing check raises `CheckError`.
- **`apptoolkit.resource`** – `Identifier` (`application/type/id`) and
  `encode` / `decode` / `decode_int64` / `decode_bytes` between identifiers
  and database values, with per-message `Codec` classes registered through
  `register_codec`, an application name from `register_application`, and
  `name(pb)` for resource names (`set_plural` adds an `s`).
- **`apptoolkit.network`** – `get_open_port_in_range(lower, upper)` and
  `get_open_port()` find a port nothing listens on, or raise `PortError`.
- **`apptoolkit.process`** – `run_binary`, `build_go_source` (needs the `go`
  tool) and `run_container` (needs `docker`); each returns a function that
  stops or removes what it started.
- **`apptoolkit.postgres`** – `new_test_postgres_db(connect, **options)`
  describes a throwaway PostgreSQL database; `PostgresDB.run_as_docker_container()`
  starts it, `check_connection()` waits for it, `reset()` empties it and runs
  the optional `migrate_up` / `migrate_down` functions, and `dsn()` gives its
  connection string. `connect` is any function that takes a DSN and returns
  a DB-API connection.

## What the package does not do

It does not turn filtering, sorting, pagination or field-selection requests
into SQL, does not map model classes to table and column names, and does not
work out joins or associations to preload. It has no command-line program
and no server of its own: the health handlers are WSGI applications for you
to mount.

## Examples

Copy selected fields between objects:

```python
from apptoolkit.fieldmask import merge_with_mask

merge_with_mask(source, dest, ["FieldA.FieldTwo", "FieldB.FieldOne"])
```

Check a migrated database:

```python
from apptoolkit.migrations import max_version_from, verify_migration_version

verify_migration_version(connection, max_version_from("migrations"))
```

One transaction per call:

```python
from apptoolkit.transaction import begin_from_context, transaction_interceptor

def handler(request):
    session = begin_from_context()
    ...

call = transaction_interceptor(db)
response = call(request, handler)
```

Serve health probes:

```python
from apptoolkit.checks import dns_probe_check
from apptoolkit.health import ChecksHandler

checks = ChecksHandler("/healthz", "/ready")
checks.add_readiness("dns", dns_probe_check("db.example.com", 5.0))
assert checks.handle("GET", "/healthz") == 200
```

Encode and decode resource identifiers:

```python
from apptoolkit import resource

resource.register_application("simpleapp")
identifier = resource.encode(None, "externalapp/external_resource/id")
print(resource.decode(None, identifier))  # externalapp/external_resource/id
```

Find a free port:

```python
from apptoolkit.network import get_open_port_in_range

port = get_open_port_in_range(35000, 65535)
```

## Running the tests

```
pip install -e ".[test]"
pytest
```