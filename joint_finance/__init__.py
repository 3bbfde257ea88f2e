"""Top-level package for joint_finance.

Domain logic for a personal or couple finance tracker.  The primary
modules are:

* ``periods`` – weekly/monthly/yearly amount conversion and date ranges
* ``budgets`` – spend per category against budget limits
* ``health`` – the 0-100 financial health score and recommendations
* ``db`` – the SQLite ledger the command line report reads from

Produce a report from the ledger with:

```bash
python scripts/health_report.py --user alice
```
"""

from . import budgets  # noqa: F401  # re-exported for convenience
from . import health  # noqa: F401  # re-exported for convenience
from . import periods  # noqa: F401  # re-exported for convenience

__version__ = "0.1.0"

__all__ = ["budgets", "health", "periods"]
