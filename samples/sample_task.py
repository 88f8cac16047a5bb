"""Sample task module for CronTick.

The engine runs a task module as ``__main__`` with four positional string
arguments: the job id, the schedule text, the target time in ISO 8601 and,
when the job has any, its arguments (JSON unless given as plain text).

In a worker thread the arguments are published as the ``__argv__`` global;
in a separate process they are on the command line.
"""

import json
import sys
from datetime import datetime


def main(argv):
    job_id, schedule, target = int(argv[0]), argv[1], datetime.fromisoformat(argv[2])
    data = None
    if len(argv) > 3:
        try:
            data = json.loads(argv[3])
        except ValueError:
            data = argv[3]

    print(f'"{schedule}" task {job_id} -> {target:%H:%M} {data if data is not None else ""}'.rstrip())


if __name__ == "__main__":
    main(globals().get("__argv__") or sys.argv[1:])
