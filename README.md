# barblocks

Building blocks for a Linux status bar. Each module reads one source of
system information, turns it into values and decides which state
(`State.IDLE`, `INFO`, `GOOD`, `WARNING`, `CRITICAL`) the block should be
shown in.

## Modules

| Module | What it provides |
|--------|------------------|
| `barblocks.blocks` | `BlockError`, `ConfigError`, `State`, `BlockType`, events (`UpdateRequest`, `Click`), `CommonApi`, `CommonConfig`, `split_common_config`, `parse_block_type` |
| `barblocks.cpu` | Per-core and average CPU utilization, frequencies and turbo boost (`CpuSampler`, `parse_proc_stat`, `utilization_barchart`, `utilization_state`, `boost_status`) |
| `barblocks.load` | 1, 5 and 15 minute load averages (`read_load`, `parse_loadavg`, `count_logical_cores`, `load_state`) |
| `barblocks.battery` | `BatteryStatus`, `BatteryInfo`, `DeviceName`, `apply_thresholds`, `battery_state`, `format_time_remaining` |
| `barblocks.sysfs_battery` | Batteries under `/sys/class/power_supply` (`SysfsBattery`, `battery_info_from_props`) |
| `barblocks.apc_ups` | UPS batteries served by an apcupsd daemon over TCP (`ApcUpsBattery`, `read_status`) |
| `barblocks.disk_space` | Total, used, free and available space (`disk_usage`, `DiskUsage`, `InfoType`, `alert_value`, `disk_state`) |
| `barblocks.backlight` | Backlight brightness from `/sys/class/backlight` with optional root scaling (`open_device`, `BacklightDevice`, `backlight_icon`, `step_brightness`) |
| `barblocks.updates` | Pending `apt` and `dnf` updates (`fetch_apt_updates`, `fetch_dnf_updates`, `count_apt_updates`, `count_dnf_updates`, `update_state`, `select_format`) |
| `barblocks.custom` | Output of a shell command, plain or JSON (`run_command`, `block_output`, `command_cycle`, `choose_shell`) |
| `barblocks.keyboard_layout` | Keyboard layout and variant (`query_setxkbmap`, `parse_layout`, `apply_mappings`) |
| `barblocks.github` | Unread GitHub notification counts by reason (`get_stats`, `notification_state`, `should_show`) |
| `barblocks.docker` | Container and image counts from the Docker socket (`fetch_docker_status`) |
| `barblocks.version` | Version string with the current git commit (`detect_version`, `format_version`) |
| `barblocks.manpage` | Markdown documentation generator for block sources |

Errors are raised as `BlockError` (or `ConfigError` for bad options),
carrying a short message meant to be shown in the bar.

## Installing

    pip install .

Python 3.10 or newer is required. The package has no third-party
dependencies.

## Examples

CPU utilization between two samples of `/proc/stat`:

```python
from barblocks.cpu import CpuSampler, utilization_state

sampler = CpuSampler()          # takes the first sample
values = sampler.sample()       # "utilization", "barchart", "frequency", "utilization1", ...
state = utilization_state(values["utilization"] / 100)
```

Load average and its state:

```python
from barblocks.load import count_logical_cores, load_state, read_load

m1, m5, m15 = read_load("/proc/loadavg")
with open("/proc/cpuinfo") as f:
    cores = count_logical_cores(f.read())
state = load_state(m1, cores)
```

Battery from sysfs:

```python
from barblocks.battery import DeviceName, apply_thresholds, battery_state, format_time_remaining
from barblocks.sysfs_battery import SysfsBattery

info = SysfsBattery(DeviceName("BAT0")).get_info()   # None if no battery
if info is not None:
    info = apply_thresholds(info)
    state = battery_state(info)
    if info.time_remaining is not None:
        print(format_time_remaining(info.time_remaining))   # e.g. "1:30"
```

Disk space with thresholds in gigabytes:

```python
from barblocks.disk_space import InfoType, alert_value, disk_state, disk_usage, parse_alert_unit

usage = disk_usage("~")
value = alert_value(usage, InfoType.AVAILABLE, parse_alert_unit("GB"))
state = disk_state(value, InfoType.AVAILABLE, warning=15.0, alert=10.0)
```

Output of a command:

```python
from barblocks.custom import block_output, choose_shell, run_command

result = block_output(run_command(choose_shell(), "uname -r"))
# (values, state), or None when the block should be hidden
```

Splitting a keyboard layout name:

```python
from barblocks.keyboard_layout import parse_layout

info = parse_layout("English (Workman)")
# info.layout == "English", info.variant == "Workman"
```

## Notes

- `barblocks.updates.prepare_apt_cache` creates a private apt state
  directory `barblocks-apt` in the temporary directory, so the update
  list can be refreshed without root privileges.
- `barblocks.github.resolve_token` takes the token from its argument or,
  failing that, from the `BARBLOCKS_GITHUB_TOKEN` environment variable.
- `CommonApi.recoverable` retries a failing call, reporting each failure
  as the block's error and waiting `error_interval` seconds or for an
  update request between attempts.

## Generating block documentation

Each block source may begin with lines of `//!` documentation. The
generator collects them from the `blocks` directory under a source
directory and writes one Markdown file with a section per block, sorted
by name; headings inside a block's documentation are pushed down two
levels.

    barblocks-gen-manpage <source dir> <output file>

For example:

    barblocks-gen-manpage ../src ../man/blocks.md

Run with fewer than two arguments, it prints usage and exits with status 1.

## What this package does not do

- It does not run a status bar: there is no main loop, no i3bar/swaybar
  protocol output, no theme or icon set and no format-string engine.
  Callers supply icons to `CommonApi` and render the values themselves.
- `BlockType` names every block a configuration may mention, but only the
  modules listed above are provided. Blocks that talk to D-Bus, sway IPC
  or network services (bluetooth, sound, net, weather and others) are not
  included, and setting the backlight brightness is not supported.

## Tests

    pip install .[test]
    pytest