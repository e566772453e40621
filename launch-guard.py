#!/usr/bin/env python

import sys

from launch_guard.cli import main


if __name__ == "__main__":
    sys.exit(main())
