#!/usr/bin/env python3
"""
Main entry point for the training-program console client
"""

from lms_console.main import run

if __name__ == "__main__":
    run()
