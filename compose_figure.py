#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Compose rendered figure panels into one multi-panel PDF.
"""

# local repo modules
import panel_composer.cli


if __name__ == "__main__":
	panel_composer.cli.main()
