# loadshear

`loadshear` is the scheduling core of a load generator. A run is a timeline
of actions over a pool of sessions: create them, connect them, send payloads,
flood, drain and disconnect. An orchestrator spreads these actions over a
number of shards, each shard runs on its own thread with its own session
pool, and a snapshot is pulled from every shard at a fixed interval.

The package also has the text side of a command-line front end: option
parsing, a dry-run listing of a plan, the authorization prompt, and a metrics
dashboard rendered as plain text.

**Only point a load generator at systems you are explicitly authorized to
test.**

## Installing

Install the package from a checkout of this project with your usual Python
packaging tool. It needs nothing beyond the standard library; the `test`
extra pulls in `pytest`.

## Modules

| Module | Contents |
| --- | --- |
| `loadshear.actions` | `ActionType`, `ActionDescriptor` |
| `loadshear.orchestrator` | `OrchestratorConfig`, `Orchestrator`, `MetricsRound`, `split_sessions`, `intersect_action` |
| `loadshear.shard` | `Shard` |
| `loadshear.session_pool` | `SessionPool` |
| `loadshear.handlers` | `HeaderType`, `HeartbeatHandler`, `FillHandler` |
| `loadshear.cli_parsing` | `parse_cli`, `CLIOptions`, `CLIParseResult`, `ParseStatus`, `usage_text`, `options_description` |
| `loadshear.cli` | `ms_to_timestring`, `describe_action`, `format_dry_run`, `acknowledgement_text`, `request_acknowledgement`, `render_dashboard` |
| `loadshear.histogram` | `Color`, `interpolate_color`, `gradient_color`, `render_histogram`, `bytes_display`, `numeric_display` |
| `loadshear.numeric_strings` | `bytes_display_string`, `decimal_suffix_string`, `y_axis_text` |

## Actions

Every action covers the half-open session range `[start, end)` and carries
an offset in milliseconds from the start of the run. `count` is the number of
sessions for `CREATE`, the number of copies for `SEND` and the timeout for
`DRAIN`.

```python
from loadshear.actions import ActionDescriptor

plan = [
    ActionDescriptor.create(0, 100, 0),
    ActionDescriptor.connect(0, 100, 0),
    ActionDescriptor.send(0, 50, 10, 500),
    ActionDescriptor.drain(0, 100, 2000, 1500),
    ActionDescriptor.disconnect(0, 100, 4000),
]

print([action.type_name() for action in plan])
```

A `CREATE` action splits its sessions as evenly as possible over the shards
(`split_sessions(count, shard_count)`; the first `count % shard_count` shards
take one extra), and every action is cut down to the part of its range that
falls inside each shard (`intersect_action`), renumbered from that shard's
first session.

## Running a plan

Sessions are supplied by you. `OrchestratorConfig.session_factory` is called
as `session_factory(handler, metrics, on_done)` and must return an object
with `start(endpoints)`, `send(n)`, `flood()`, `drain()` and `stop()`. A
session that was started must call `on_done()` once it has finished; a shard
only closes when all its started sessions have done so, or after
`force_stop_timeout_ms` (30 seconds by default).

```python
from loadshear.actions import ActionDescriptor
from loadshear.orchestrator import Orchestrator, OrchestratorConfig


class QuietSession:
    def __init__(self, handler, metrics, on_done):
        self._on_done = on_done
        self._running = False

    def start(self, endpoints):
        self._running = True

    def send(self, n):
        pass

    def flood(self):
        pass

    def drain(self):
        pass

    def stop(self):
        if self._running:
            self._running = False
            self._on_done()


config = OrchestratorConfig(
    session_factory=QuietSession,
    endpoints=[("127.0.0.1", 9000)],
    shard_count=2,
)
actions = [
    ActionDescriptor.create(0, 10, 0),
    ActionDescriptor.connect(0, 10, 0),
    ActionDescriptor.disconnect(0, 10, 200),
]

Orchestrator(actions, config, metrics_sink=print).start()
```

`start()` blocks until every shard has closed; `early_stop()` ends a run
before its schedule is done. The optional `metrics_sink` receives a
`MetricsRound` every `metrics_interval_ms` (500 by default) holding the
latest snapshot from each shard; its `connected_sessions` property sums the
active sessions. `OrchestratorConfig.handler_factory` builds one message
handler per shard thread and `metrics_factory` one metrics object per shard
(it must offer `fetch_snapshot()`).

## Dry runs and the authorization prompt

`format_dry_run(actions, endpoints, packet_identifiers, operations)` lists
the endpoints and then one line per action, each prefixed with its offset as
produced by `ms_to_timestring`. Endpoints are `(host, port)` pairs.

```python
from loadshear.cli import ms_to_timestring

print(ms_to_timestring(61001))   # "[01:01:001] "
```

`request_acknowledgement(endpoints, stream)` logs the warning text from
`acknowledgement_text` and reads one line from `stream` (standard input by
default); it returns `True` only for the exact reply `I UNDERSTAND`.

## Command-line options

`parse_cli` reads a list of arguments (without the program name):

```python
from loadshear.cli_parsing import parse_cli

result = parse_cli(["plan.ldsh", "--dry-run"])
if result.good_parse():
    print(result.options.script_file, result.options.dry_run)
else:
    exit_code = result.status_code()
```

Options are `--script/-s` (or the script path as a positional argument),
`--dry-run/-d`, `--expand-envs/-e`, `--acknowledge`, `--quiet`,
`--arena-init-mb`, `--help/-h` and `--version/-v`. Asking for help or the
version, or giving no script, ends with status `HELP` or `VERSION` and exit
code 0; a bad option gives `ERROR` and exit code 1. Help, version and error
messages go to the `loadshear` logger.

## Metrics text

`render_histogram(buckets, title, height=8, bin_width=4)` draws up to sixteen
latency buckets as block-character bars with a labelled y axis and bucket
labels from 64 µs up to more than one second. `render_dashboard(totals,
deltas, show_deltas)` lays out byte and connection counters next to the
connection, send and read latency histograms, either totals or the latest
change. `gradient_color` and `interpolate_color` give the bar colour for a
column; `Color.ansi_foreground()` turns it into a terminal escape sequence.

```python
from loadshear.numeric_strings import bytes_display_string, decimal_suffix_string

print(bytes_display_string(2048))     # 2.0 KiB
print(decimal_suffix_string(1500))    # 1.5k
print(decimal_suffix_string(25000))   # 25k
```

## Example handlers

`HeartbeatHandler` reads a five-byte header (a `HeaderType` byte followed by
a little-endian payload length) and answers a `PING` with an empty
`PING_RESPONSE` header. `FillHandler` answers every body with the same
number of `0x55` bytes and returns 0 from `handle_header`, leaving header
parsing to a default parser.

## What the package does not do

- It installs no command. `parse_cli`, the dry-run listing, the prompt and
  the dashboard are building blocks; nothing here ties them into a program.
- It opens no network connections. There are no TCP or UDP session classes;
  sessions come from the factory you pass in.
- It does not read plan scripts or packet files; plans are built from
  `ActionDescriptor` objects in code.
- It does not record latencies or byte counts. Shards report only the number
  of active sessions unless you supply a `metrics_factory`.
- The dashboard is returned as a string; there is no interactive,
  keyboard-driven screen.

## Running the tests

Install the `test` extra and run `pytest` from the project directory.