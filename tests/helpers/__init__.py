"""Shared test doubles."""

from tests.helpers.fakes import FailingAdapter, FakeRemote, make_record

__all__ = ["FailingAdapter", "FakeRemote", "make_record"]
