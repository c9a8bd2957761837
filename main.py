#!/usr/bin/python

"""
main file of the SoloBit client, same as the `solobit` command
"""

from src.SoloBit.cli import main

import sys


if __name__ == '__main__':
    if sys.version_info[0] != 3 or sys.version_info[1] < 10:
        raise Exception("Wrong Python version! Use version 3.10 and above.")

    sys.exit(main())
