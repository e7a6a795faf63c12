#!/usr/bin/env python3
"""
main.py  —  JMeter plugins manager CLI
Usage:
  pmgr help                                 # show commands
  pmgr status                               # installed plugins + upgrades
  pmgr available                            # everything in the repository
  pmgr upgrades                             # plugins with a newer version
  pmgr install id[=version][,id2...]        # install / update plugins
  pmgr uninstall id[,id2...]                # remove plugins
  pmgr install-all-except [id1,id2,...]     # install everything else
  pmgr install-for-jmx path1[,path2,...]    # install what test plans need

Options (before the command):
  --home DIR        JMeter home (default: PMGR_HOME or current directory)
  --config FILE     YAML config with a ``pmgr:`` section
  --repo-url URL    plugin repository
  --timeout SEC     network timeout (default 30)
  --log-level LVL   DEBUG shows download progress
"""

import sys

from cli.plugins_cmd import main

if __name__ == "__main__":
    sys.exit(main())
