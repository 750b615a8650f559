# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

from dashboard_reporter.cli import main

main()
