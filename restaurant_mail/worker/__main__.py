"""Maintenance worker package entry point.

Allows execution of the worker via: python -m restaurant_mail.worker
"""

import asyncio

from restaurant_mail.worker.processor import main

if __name__ == "__main__":
    asyncio.run(main())
