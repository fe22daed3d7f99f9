"""
pageforge test suite
====================

Test Modules
------------
- test_collector.py: Tests for page collection and pattern expansion
- test_data.py: Tests for data loading and DataContext
- test_resolver.py: Tests for template-search roots
- test_renderer.py: Tests for inheritance, partials, macros and errors
- test_emitter.py: Tests for writing rendered pages
- test_pipeline.py: End-to-end build tests
- test_models.py: Tests for BuildConfig
- test_scaffold.py: Tests for the starter site
- test_cli.py: Tests for command-line interface

Running Tests
-------------
    # Run all tests
    pytest

    # Run specific module
    pytest tests/test_renderer.py

    # Run specific test class
    pytest tests/test_renderer.py::TestMacros
"""
