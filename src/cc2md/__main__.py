# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025-2026 @yosagi
from .cli import cli

if __name__ == '__main__':
    cli()
