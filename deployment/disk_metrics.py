#!/usr/bin/env python3
"""Example metrics command: report disk usage for a mount point.

Usage: service-metrics ... --metrics-cmd deployment/disk_metrics.py --metrics-cmd-arg /data
Exits 10 until the mount point exists.
"""
import json
import os
import shutil
import sys

NOT_READY = 10

path = sys.argv[1] if len(sys.argv) > 1 else '/'

if not os.path.isdir(path):
    print(f"{path} is not mounted yet")
    sys.exit(NOT_READY)

try:
    total, used, free = shutil.disk_usage(path)
except OSError as e:
    print(f"Failed to read disk usage for {path}: {e}")
    sys.exit(1)

print(json.dumps([
    {'key': 'disk_used_percent', 'value': (used / total) * 100, 'unit': 'Percent'},
    {'key': 'disk_free_bytes', 'value': free, 'unit': 'Bytes'},
    {'key': 'disk_total_bytes', 'value': total, 'unit': 'Bytes'},
]))
