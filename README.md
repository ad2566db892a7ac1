# graphextract

Runs GraphQL queries against subgraphs on The Graph gateway. It runs them
once or on a cron schedule and logs every result.

## Installation

    pip install .

## Configuration

The `graphextract` command needs a `.env` file in the working directory.
It stops with an error if the file is missing. Values that are already in
the process environment take precedence over the values in the file.

| Variable             | Meaning                                              | Default          |
|----------------------|------------------------------------------------------|------------------|
| `ENDPOINTS_JSON`     | JSON array of subgraph deployment IDs to query       | required         |
| `GRAPHQL_AUTH_TOKEN` | Bearer token for the gateway                         | required         |
| `OUTPUT_DIR`         | Output directory (`--output`)                        | `data`           |
| `CONCURRENCY`        | Number of queries that may run at once               | `8`              |
| `KAFKA_BROKERS`      | Comma-separated broker list                          | `localhost:9092` |
| `KAFKA_TOPIC_PREFIX` | Prefix for topic names                               | `thegraph`       |
| `CRON_SCHEDULE`      | Cron expression                                      | `*/5 * * * *`    |
| `RUN_ONCE`           | Run one extraction and exit                          | `false`          |
| `ENABLE_KAFKA`       | Request publishing to a message bus                  | `true`           |
| `DEBUG`              | Set to `true` for debug logging                      | unset            |

A minimal `.env`:

    ENDPOINTS_JSON=["9EAxYE17Cc478uzFXRbM7PVnMUSsgb99XZiGxodbtpbk"]
    GRAPHQL_AUTH_TOKEN=token

## Running

Run the extraction once and exit:

    graphextract --once --enable-kafka=false

Run on a schedule. One extraction runs straight away, and more follow on
each tick of the cron expression until the process receives SIGINT or
SIGTERM:

    graphextract --cron "*/10 * * * *"

Each option can also be set through the environment variable shown in the
table above. A command-line flag overrides the variable. The flags are
`--output`, `--concurrency`, `--kafka`, `--topic-prefix`, `--cron`,
`--once` and `--enable-kafka`. The boolean flags accept a value, as in
`--once=true` or `--enable-kafka=false`.

The cron expression has five fields: minute, hour, day of month, month
and day of week. It also accepts lists, ranges, steps, month and weekday
names, and the descriptors `@yearly`, `@annually`, `@monthly`, `@weekly`,
`@daily`, `@midnight` and `@hourly`. `graphextract.cli.CronSchedule`
parses these expressions, and `CronSchedule.next_after()` computes the
next firing time.

The command exits with status 1 in these cases:

- the configuration cannot be loaded;
- no endpoints are set;
- no token is set;
- the cron expression is invalid.

## Library use

    from graphextract.graph_client import TheGraphClient
    from graphextract.extraction import DataExtractor, ExtractionFailed

    with TheGraphClient("token") as client:
        extractor = DataExtractor(
            client,
            ["9EAxYE17Cc478uzFXRbM7PVnMUSsgb99XZiGxodbtpbk"],
            data_callback=lambda endpoint, query_type, data: print(query_type, data),
        )
        try:
            extractor.extract_all()
        except ExtractionFailed as exc:
            print(exc, exc.errors)

`DataExtractor` runs the matching built-in query for each endpoint and
query type. For each result it logs the data and calls `data_callback`
when one is given. It also writes a `Message` to `kafka_writer` when one
is given. Failures in the callback or the writer are logged and do not
fail the run.

Other modules:

- `graphextract.queries`: the built-in queries.
  `get_query_for_endpoint(endpoint, query_type)` tries an exact endpoint
  match first, then a partial match, then the default query.
- `graphextract.query_generator.QueryGenerator`: query templates with
  cursor pagination (`generate_paginated_query`). It can also add a
  `_meta { deployment }` selection to every query.
- `graphextract.graphql_client.GraphQLClient`: single queries with
  variables and extra headers.
- `graphextract.repository.FileRepository`: writes entities as JSON or
  JSON-lines files under `entities/`. It keeps the last ID per type and
  deployment in `metadata/*.cursor`.
- `graphextract.publisher.Publisher`: publishes `Entity` objects or raw
  bytes with producer and timestamp headers. It keeps one writer per
  topic, made by the `writer_factory` you pass in.
- `graphextract.entity`: `Entity`, `GraphResponse` and JSON helpers.
- `graphextract.ports`: protocols for these components.

## What it does not do

- **No message-bus client.** The package does not ship one. With
  `--enable-kafka` the command only logs a warning; nothing is published.
  `Publisher` and `DataExtractor` publish only through a writer object
  that you supply. That object must have `write_messages(*messages)` and
  `close()`.
- **No files written by the command.** Results are logged only. The
  `--output` directory is accepted but nothing is written to it.
- **No paginated pipeline.** Nothing joins `QueryGenerator`,
  `FileRepository` and `Publisher` into a cursor-driven, paginated
  extraction. There is also no rate limiting and no adaptive worker pool.