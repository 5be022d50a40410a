#!/usr/bin/env python3
"""
Interactive Device Session Script.

This script demonstrates the high-level session API.
Run it, plug in a device, and it will open a session, ping the device
and report what came back. Unplug and replug to see the session wait.
"""

import sys
import logging
import threading
from concurrent.futures import Future
from pathlib import Path

# Add package to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from hwsession import DeviceListConfig, create_session

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)

def main():
    print("Creating session manager...")
    session = create_session(device_list_config=DeviceListConfig(poll_interval=0.5))

    finished = threading.Event()

    def ping(error, device_session):
        if error:
            print(f"Session failed: {error}")
            finished.set()
            return None

        print(f"Session open on {device_session.features.label}")
        done = Future()
        try:
            device_session.write(b"ping\n")
            done.set_result(device_session.read_line())
        except Exception as e:
            done.set_exception(e)
        done.add_done_callback(lambda f: finished.set())
        return done

    try:
        print("\nRequesting a session (plug in the device, Ctrl+C to stop)...")
        session(ping)

        while not finished.wait(timeout=1.0):
            print(f"\rDevice available: {session.is_available()}", end="")
            sys.stdout.flush()

        print("\n\nRequesting a second session...")
        finished.clear()
        session(ping)
        finished.wait(timeout=10.0)

    except KeyboardInterrupt:
        print("\nInterrupted by user.")
    finally:
        print("\nClosing...")
        session.close()
        print("Done.")

if __name__ == "__main__":
    main()
