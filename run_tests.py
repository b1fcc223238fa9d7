#!/usr/bin/env python
"""
Run the whole test suite with the Django test runner
Usage: python run_tests.py [app labels...]
"""
import os
import sys
import django
from django.conf import settings
from django.test.utils import get_runner

APPS = [
    'autoparts.core',
    'autoparts.catalog',
    'autoparts.parties',
    'autoparts.purchasing',
    'autoparts.sales',
    'autoparts.reports',
]

if __name__ == "__main__":
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'autoparts.config.settings')
    django.setup()
    TestRunner = get_runner(settings)
    test_runner = TestRunner(verbosity=2)
    failures = test_runner.run_tests(sys.argv[1:] or APPS)
    sys.exit(bool(failures))
