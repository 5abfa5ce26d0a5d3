# checkoutdb

Lookups of library checkout records by record id and year.

checkoutdb works in three steps:

1. **Index** the yearly CSV exports into a data file and an index file.
2. **Serve** lookups from a backend that holds the index in memory and
   answers requests over a pair of named pipes.
3. **Query** the backend from an interactive menu.

The backend and frontend use named pipes, so they run on POSIX systems only.
There are no other dependencies beyond the Python standard library.

## Installation

```
pip install .
```

## Building the index

Put the yearly exports in one directory. Their names must follow the pattern
`Checkouts_By_Title_Data_Lens_<year>.csv`, with years from 2005 through 2017.
Then run:

```
checkoutdb-indexer --dir path/to/csvs
```

Options:

- `--dir` – directory holding the CSV files (default: current directory)
- `--data` – data file to write (default: `checkouts.bin`)
- `--index` – index file to write (default: `index.bin`)

The first line of each CSV is taken as a header and skipped. Lines are split on
commas with empty fields dropped, and the second field is the record id. Each
line is stored whole in the data file, and its `(id, year, offset)` entry goes
to the index file. A missing year file is reported and skipped. A line whose id
is not a non-negative integer is logged as a warning and left out; a line with
fewer than two fields is left out silently. The reported total counts every
non-empty data line read.

## Running the backend

```
checkoutdb-backend
```

Options:

- `--index` – index file to load (default: `index.bin`)
- `--data` – data file to read (default: `checkouts.bin`)
- `--request-pipe` – default `/tmp/checkout_req_pipe`
- `--response-pipe` – default `/tmp/checkout_res_pipe`

The backend loads the index into memory, opens the data file, creates both
pipes afresh and waits for requests. It answers one request at a time and
understands three NUL-terminated requests:

| Request           | Reply                                                               |
|-------------------|---------------------------------------------------------------------|
| `GET <id> <year>` | the stored line followed by a NUL byte, or `NOT_FOUND`              |
| `GET_ALL <id>`    | one `<year>:<line>` row per year that holds the id, or `NOT_FOUND` |
| `QUIT`            | no reply; the backend removes its pipes and exits                   |

Any other request gets an empty reply.

## Querying

With the backend running, start the client in another terminal:

```
checkoutdb-frontend
```

It takes the same `--request-pipe` and `--response-pipe` options as the
backend. The menu has three options:

1. search by id and year (the year must lie between 2005 and 2017)
2. search an id across every year
3. exit, which also sends `QUIT` to the backend

The client also stops when its input runs out.

## Using it from Python

```python
from checkoutdb.backend import RecordStore

with RecordStore("index.bin", "checkouts.bin") as store:
    print(store.lookup(3011076, 2016))
    for year, line in store.lookup_all(3011076):
        print(year, line)
```

Other entry points:

- `checkoutdb.indexer.build_index(directory, data_path, index_path)` builds the
  two files from a directory of CSV exports and returns the line count.
- `checkoutdb.backend.handle_request(store, request)` returns the reply bytes
  for one request without any pipes.
- `checkoutdb.backend.serve(store, request_pipe, response_pipe)` runs the pipe
  service until `QUIT`.
- `checkoutdb.frontend.send_request(request, request_pipe, response_pipe)`
  sends one request to a running backend and returns its reply;
  `checkoutdb.frontend.format_response(data)` renders a reply as the menu
  shows it.
- `checkoutdb.common` holds the file formats: `IndexEntry`, `unpack_entry`,
  `iter_entries`, `write_record` and `read_record`.

## What it does not do

The store is read-only once built: there is no way to add, change or delete
records except by running the indexer again over the CSV files. The backend
serves a single local client at a time over named pipes; it has no network
interface.