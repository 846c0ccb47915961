#!/usr/bin/env python3
"""
Ticket Printer - local HTTP print server for 80mm thermal receipt printers.

Equivalent to `python -m ticket_printer`; see --help for options.
"""

from ticket_printer.__main__ import main

if __name__ == "__main__":
    raise SystemExit(main())
