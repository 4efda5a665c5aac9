"""Tests for top-level package lazy exports."""

from __future__ import annotations

import unittest

import taskterm


class PackageExportTests(unittest.TestCase):
    """Ensure __getattr__ and exported symbols behave as expected."""

    def test_lazy_exports_resolve_known_symbols(self) -> None:
        self.assertTrue(callable(taskterm.load_config))
        self.assertTrue(callable(taskterm.ensure_config_dir))
        self.assertIsNotNone(taskterm.EventBus)
        self.assertIsNotNone(taskterm.EventKind)
        self.assertIsNotNone(taskterm.AttributeStore)
        self.assertIsNotNone(taskterm.Todo)
        self.assertIsNotNone(taskterm.ObservableCollection)
        self.assertIsNotNone(taskterm.TodoList)
        self.assertIsNotNone(taskterm.MemoryAdapter)
        self.assertIsNotNone(taskterm.JsonFileAdapter)
        self.assertIsNotNone(taskterm.AppContext)
        self.assertIsNotNone(taskterm.TaskTermError)
        self.assertIsNotNone(taskterm.ValidationError)

    def test_exported_names_are_listed(self) -> None:
        self.assertIn("TodoList", taskterm.__all__)
        self.assertIn("TaskTermApp", taskterm.__all__)

    def test_unknown_symbol_raises_attribute_error(self) -> None:
        with self.assertRaises(AttributeError):
            getattr(taskterm, "THIS_DOES_NOT_EXIST")


if __name__ == "__main__":
    unittest.main()
