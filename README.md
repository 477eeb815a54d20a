# gatorfeed

`gatorfeed` is a small command-line RSS aggregator. It keeps a list of users,
the feeds they add, which feeds each user follows, and the posts collected from
those feeds, all in a SQLite database. A long-running `agg` command fetches
feeds on a fixed interval and stores new posts; `browse` shows the latest ones.

It uses only the Python standard library.

## Installation

```
pip install .
```

This installs the `gator` command. The same entry point can also be run as
`python -m gatorfeed.cli`.

## Configuration

`gator` reads its settings from `.gatorconfig.json` in your home directory.
The file must exist before the first run:

```json
{
    "db_url": "gator.db",
    "current_user_name": ""
}
```

- `db_url` names the SQLite database. Accepted forms are a plain file path,
  `sqlite:///path/to/file.db`, a `file:` URI, or `""`, `":memory:"` or
  `sqlite://` for a throwaway in-memory database. The tables are created on
  first use.
- `current_user_name` is the logged-in user. `gator` rewrites the file itself
  when you run `login` or `register`, so you normally leave it alone.

## Usage

```
gator <command> [arguments...]
```

| Command                   | What it does                                                             |
|---------------------------|--------------------------------------------------------------------------|
| `register <name>`         | Create a user and log in as that user.                                   |
| `login <name>`            | Switch to an existing user.                                              |
| `users`                   | List all users, marking the current one with `(current)`.                |
| `reset`                   | Delete every user, and with them their feeds, follows and posts.         |
| `addfeed <name> <url>`    | Add a feed and follow it as the current user.                            |
| `feeds`                   | List every feed with its URL and the user who added it.                  |
| `follow <url>`            | Follow a feed that has already been added.                               |
| `following`               | List the feeds the current user follows.                                 |
| `unfollow <url>`          | Stop following a feed.                                                   |
| `agg <interval>`          | Fetch feeds forever, one round every interval.                           |
| `browse [limit]`          | Show the newest posts from feeds the current user added (default 2).     |

`addfeed`, `follow`, `following`, `unfollow` and `browse` need a logged-in user.

### Intervals

`agg` takes a duration made of a number and a unit, optionally repeated:
`ns`, `us`, `ms`, `s`, `m`, `h`. Examples: `30s`, `1m`, `1.5h`, `2h45m`.
The interval must be positive.

Each round picks up to three feeds, those fetched least recently with
never-fetched feeds first, and scrapes them in parallel. Every item becomes a
post; a post whose URL is already stored is skipped. Publication dates are read
in the form `Mon, 02 Jan 2006 15:04:05 MST`; a date that cannot be read is
replaced by the time of the fetch. Progress is logged to standard error. Stop
`agg` with Ctrl+C.

### A short session

```
gator register alice
gator addfeed "Example Blog" https://blog.example.com/rss.xml
gator agg 1m        # leave running for a while, stop with Ctrl+C
gator browse 5
```

## Errors

When a command fails — an unknown command, missing arguments, an unknown user,
a feed that cannot be found, a missing or malformed configuration file — `gator`
prints the error to standard error and exits with status 1. Interrupting `agg`
exits with status 130.

## Limitations

- Storage is SQLite only. A `db_url` with any other scheme (for example a
  `postgres://` URL) is refused with "unsupported database url".
- Feeds are fetched over `http` and `https` only, with a 10-second timeout.
- `browse` shows posts from the feeds the current user added, not from every
  feed the user follows.

## Using it from Python

The pieces are plain modules:

- `gatorfeed.config` — `Config`, `read_config`, `write_config`, `config_file_path`.
- `gatorfeed.database` — `connect(url)` returns a `Database` with methods such as
  `create_user`, `create_feed`, `create_feed_follow`, `create_post`,
  `get_next_feeds_to_fetch` and `get_posts_for_user`; failures raise
  `DatabaseError` (lookups that match nothing raise `NotFoundError`).
- `gatorfeed.rss` — `parse_feed(data)` and `fetch_feed(url)` return an `RSSFeed`
  of `RSSItem`s; failures raise `FeedFetchError`.
- `gatorfeed.scraper` — `scrape_feed` and `scrape_feeds` store a feed's items as
  posts; `parse_pub_date` reads publication dates.
- `gatorfeed.commands` — `State`, `Command`, `Commands` and `CommandError`.
- `gatorfeed.handlers` — one `handle_*` function per command, `logged_in` and
  `parse_duration`.
- `gatorfeed.cli` — `build_commands()` and `main(argv=None)`.

## Running the tests

```
pip install ".[test]"
pytest
```