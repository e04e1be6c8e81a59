"""Collects a few facts about the host for the info-gathering panel."""

import os
import platform
import shutil

METADATA = {
    "type": "info-gathering",
    "category": "System",
    "displayName": "Host snapshot",
    "dataType": "key-value",
    "ttlSeconds": 3600,
}


def run(context):
    usage = shutil.disk_usage(context.tasks_dir)
    context.logger.info("Collected host snapshot")
    return {
        "hostname": platform.node(),
        "python": platform.python_version(),
        "cpus": os.cpu_count(),
        "diskFreeGb": round(usage.free / 1024**3, 1),
    }
