# streamdvr

Record your favourite live channels automatically. `streamdvr` checks a
channel at a fixed interval, and as soon as it goes live it picks the HLS
variant closest to the resolution and framerate you asked for and appends
the segments to `.ts` files on disk. Files can be split by duration or by
size.

It runs in one of two ways:

* **Single channel** – pass a username and it records that channel until
  you stop the program (Ctrl+C). Nothing is saved to disk apart from the
  recordings.
* **Web UI** – start it without a username and manage any number of
  channels from your browser. Channels are saved to `./conf/channels.json`
  and, the next time the web UI starts, every channel that was not paused
  is resumed (one second apart).

## Installation

```
pip install .
```

For running the test suite:

```
pip install ".[test]"
pytest
```

## Usage

Record one channel:

```
streamdvr --username somechannel
```

Start the web interface on port 8080 (the default):

```
streamdvr
```

then open `http://localhost:8080`. The page lets you add channels
(several at once, separated by commas), pause, resume and stop them, and
change the cookies and User-Agent used for requests. Each channel shows
whether it is online, offline or paused, the current file, when the stream
was found, its duration and size against the configured limits, and the
latest log lines (up to 100). These are updated live through server-sent
events on `/updates`.

Protect the web interface with HTTP basic authentication (both options
must be given for it to take effect):

```
streamdvr --admin-username admin --admin-password password
```

Show the version:

```
streamdvr --version
```

## Options

| Option | Default | Meaning |
| --- | --- | --- |
| `-u`, `--username` | | Channel to record; without it the web UI starts |
| `--admin-username` | | Username for web authentication |
| `--admin-password` | | Password for web authentication |
| `--framerate` | `30` | Desired framerate (FPS) |
| `--resolution` | `1080` | Desired resolution, e.g. `1080` for 1080p |
| `--pattern` | see below | Template for naming recorded videos |
| `--max-duration` | `0` | Start a new file every N minutes (`0` disables) |
| `--max-filesize` | `0` | Start a new file every N MB (`0` disables) |
| `-p`, `--port` | `8080` | Port for the web interface |
| `--interval` | `3` | Check whether the channel is online every N minutes |
| `--cookies` | | Cookies to send, as `key=value; key2=value2` |
| `--user-agent` | | Custom User-Agent for requests |
| `--domain` | `https://chaturbate.com/` | Site the channel pages are fetched from |

If the exact resolution is not offered, the highest one below it is
used; if none is below it, recording fails and is retried after the
interval. If the framerate is not offered, whichever one is available is
used.

## File name pattern

The default pattern is

```
videos/{{.Username}}_{{.Year}}-{{.Month}}-{{.Day}}_{{.Hour}}-{{.Minute}}-{{.Second}}{{if .Sequence}}_{{.Sequence}}{{end}}
```

Available fields are `Username`, `Year`, `Month`, `Day`, `Hour`, `Minute`,
`Second` (local time at which the stream was found online) and `Sequence`,
the number of the file within the current recording. `{{if .Field}}…{{end}}`
(optionally with `{{else}}`) emits its contents only when the field is
non-empty or non-zero. Field values are HTML-escaped. The `.ts` extension
is added automatically, missing directories are created, and files that
end up empty are removed.

## Blocked requests

If the site answers with a Cloudflare challenge or an age check, or
refuses a request with 403, the channel log says so and the check is
retried after the interval. Copy the cookies and User-Agent of a browser
session that can view the site and pass them with `--cookies` and
`--user-agent`, or set them in the web UI.

## Using it as a library

The building blocks can be used on their own:

* `streamdvr.m3u8.decode(text)` parses a playlist into a `MasterPlaylist`
  or `MediaPlaylist`, raising `PlaylistDecodeError` on bad input.
* `streamdvr.chaturbate.parse_stream(body)` extracts the HLS source from a
  channel page, and `pick_playlist(master, base_url, resolution, framerate)`
  chooses the variant.
* `streamdvr.pattern.render_pattern(template, pattern)` renders a file name
  from a `Pattern` (see `Pattern.from_timestamp`).
* `streamdvr.formatting` holds `format_duration`, `format_filesize` and
  `segment_seq`.
* `streamdvr.manager.Manager` keeps the channels and publishes their
  events; `streamdvr.web.create_server` builds the web server around it.

## Limitations

* HTTPS certificates are not verified when fetching pages, playlists or
  segments. Proxies set through the usual environment variables are used.
* The web UI is a single plain HTML page without styling; it serves no
  other files.
* Recordings are written exactly as the stream delivers them; no
  remuxing or conversion is done.