"""Allow `python -m scripts` to seed the control catalog and questionnaire."""

import asyncio

from scripts.seed import _run_seed

asyncio.run(_run_seed())
