# control_process.py
"""
Controls a running watcher (cw_watch.py) through flag files.

Examples:
- Pause polling:  python -m chainwindow.control_process watch pause
- Resume polling: python -m chainwindow.control_process watch resume
- Stop watcher:   python -m chainwindow.control_process watch stop
"""
import os
import argparse

from chainwindow.utils import control_flag


def apply_control(process_name: str, action: str) -> str:
    """Creates or removes the flag file for `action`. Returns a status message."""
    if action == 'resume':
        pause_flag = control_flag(process_name, 'pause')
        if not os.path.exists(pause_flag):
            return f"Process '{process_name}' is not currently paused (no pause flag found)."
        os.remove(pause_flag)
        return f"'{pause_flag}' removed. Process '{process_name}' will resume."

    flag = control_flag(process_name, action)
    with open(flag, 'w'):
        pass
    verb = "pause" if action == 'pause' else "stop gracefully"
    return f"'{flag}' created. Process '{process_name}' will {verb}."


def main(argv=None):
    parser = argparse.ArgumentParser(description="Control the chain window watcher via flag files.")
    parser.add_argument("process_name", type=str, help="Name of the process to control (default watcher: 'watch').")
    parser.add_argument("action", choices=['pause', 'resume', 'stop'], help="The action to perform.")
    args = parser.parse_args(argv)

    try:
        print(apply_control(args.process_name, args.action))
    except OSError as e:
        print(f"Error applying '{args.action}' to '{args.process_name}': {e}")
        return 1
    return 0

if __name__ == "__main__":
    raise SystemExit(main())
