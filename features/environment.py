#!/usr/bin/env python3
# CUI // SP-CTI
"""Behave environment configuration for fnmigrate BDD tests."""

import os
import shutil
import sys
import tempfile


def before_all(context):
    """Set up global test context."""
    # Ensure project root is in path
    project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    if project_root not in sys.path:
        sys.path.insert(0, project_root)
    context.project_root = project_root


def before_scenario(context, scenario):
    """Give each scenario its own scratch directory."""
    context.state = None
    context.error = None
    context.workdir = tempfile.mkdtemp(prefix="fnmigrate-bdd-")


def after_scenario(context, scenario):
    shutil.rmtree(context.workdir, ignore_errors=True)
