"""Waits for readiness on file descriptors and runs the matching callbacks."""

from __future__ import annotations

import enum
import errno
import os
import select
import socket
import sys
import weakref
from collections.abc import Callable
from dataclasses import dataclass

from netkit.errors import UnixError
from netkit.file_descriptor import FileDescriptor

Callback = Callable[[], None]
Interest = Callable[[], bool]

MAX_CATEGORIES = 64
_MAX_ITERATIONS = 128
_ERROR_EVENTS = select.POLLERR | select.POLLNVAL
_ALWAYS_REPORTED = select.POLLERR | select.POLLHUP | select.POLLNVAL


def _always() -> bool:
    return True


def _nothing() -> None:
    return None


class Direction(enum.Enum):
    """Interest in reading (IN) or writing (OUT) a polled descriptor."""

    IN = select.POLLIN
    OUT = select.POLLOUT


class Result(enum.Enum):
    """The outcome of one call to :meth:`EventLoop.wait_next_event`."""

    SUCCESS = enum.auto()  # a rule was served
    TIMEOUT = enum.auto()  # nothing happened before the timeout
    EXIT = enum.auto()  # no rule is left that is interested in anything


@dataclass(eq=False)
class _Rule:
    category_id: int
    interest: Interest
    callback: Callback
    cancel_requested: bool = False


@dataclass(eq=False)
class _FDRule(_Rule):
    fd: FileDescriptor | None = None
    direction: Direction = Direction.IN
    cancel: Callback = _nothing
    error: Callback = _nothing

    def service_count(self) -> int:
        assert self.fd is not None
        return self.fd.read_count() if self.direction is Direction.IN else self.fd.write_count()


class RuleHandle:
    """A handle that can cancel a rule without keeping it alive."""

    def __init__(self, rule: _Rule) -> None:
        self._rule = weakref.ref(rule)

    def cancel(self) -> None:
        """Ask the loop to drop the rule; its cancel callback is not called."""
        rule = self._rule()
        if rule is not None:
            rule.cancel_requested = True


class EventLoop:
    """Runs callbacks for rules whose interest holds and whose descriptors are ready."""

    def __init__(self) -> None:
        self._categories: list[str] = []
        self._fd_rules: list[_FDRule] = []
        self._rules: list[_Rule] = []

    def add_category(self, name: str) -> int:
        """Register a rule category by name and return its id."""
        if len(self._categories) >= MAX_CATEGORIES:
            raise RuntimeError("maximum categories reached")
        self._categories.append(name)
        return len(self._categories) - 1

    def _category_id(self, category: int | str) -> int:
        if isinstance(category, str):
            return self.add_category(category)
        if not 0 <= category < len(self._categories):
            raise IndexError("bad category_id")
        return category

    def add_rule(
        self,
        category: int | str,
        callback: Callback,
        interest: Interest = _always,
    ) -> RuleHandle:
        """Add a rule not tied to a descriptor; a name adds a new category."""
        rule = _Rule(self._category_id(category), interest, callback)
        self._rules.append(rule)
        return RuleHandle(rule)

    def add_fd_rule(
        self,
        category: int | str,
        fd: FileDescriptor,
        direction: Direction,
        callback: Callback,
        interest: Interest = _always,
        cancel: Callback = _nothing,
        error: Callback = _nothing,
    ) -> RuleHandle:
        """Add a rule that runs ``callback`` when ``fd`` is ready in ``direction``."""
        rule = _FDRule(
            self._category_id(category),
            interest,
            callback,
            fd=fd.duplicate(),
            direction=direction,
            cancel=cancel,
            error=error,
        )
        self._fd_rules.append(rule)
        return RuleHandle(rule)

    def _drop(self, rule: _FDRule) -> None:
        if rule in self._fd_rules:
            self._fd_rules.remove(rule)

    def _report_poll_error(self, rule: _FDRule) -> None:
        assert rule.fd is not None
        name = self._categories[rule.category_id]
        try:
            sock = socket.socket(fileno=rule.fd.fd_num())
        except OSError as exc:
            if exc.errno == errno.ENOTSOCK:
                print(f'error on polled file descriptor for rule "{name}"', file=sys.stderr)
                return
            raise UnixError("getsockopt", exc.errno or 0) from exc
        try:
            socket_error = sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
        except OSError as exc:
            raise UnixError("getsockopt", exc.errno or 0) from exc
        finally:
            sock.detach()
        if socket_error:
            print(
                f'error on polled socket for rule "{name}": {os.strerror(socket_error)}',
                file=sys.stderr,
            )

    def _serve_plain_rules(self) -> bool:
        for rule in list(self._rules):
            if rule.cancel_requested:
                self._rules.remove(rule)
                continue
            fired = False
            iterations = 0
            while rule.interest():
                if iterations >= _MAX_ITERATIONS:
                    raise RuntimeError(
                        f'EventLoop: busy wait detected: rule "{self._categories[rule.category_id]}"'
                        f" is still interested after {iterations + 1} iterations"
                    )
                iterations += 1
                fired = True
                rule.callback()
            if fired:
                return True
        return False

    def wait_next_event(self, timeout_ms: int) -> Result:
        """Serve at most one rule, waiting up to ``timeout_ms`` (negative: forever)."""
        if self._serve_plain_rules():
            return Result.SUCCESS

        polled: list[tuple[_FDRule, int]] = []
        something_to_poll = False
        for rule in list(self._fd_rules):
            assert rule.fd is not None
            if rule.cancel_requested:
                self._drop(rule)
                continue
            if (rule.direction is Direction.IN and rule.fd.eof()) or rule.fd.closed():
                rule.cancel()
                self._drop(rule)
                continue
            if rule.interest():
                polled.append((rule, rule.direction.value))
                something_to_poll = True
            else:
                polled.append((rule, 0))  # still watched for errors

        if not something_to_poll:
            return Result.EXIT

        masks: dict[int, int] = {}
        for rule, events in polled:
            assert rule.fd is not None
            number = rule.fd.fd_num()
            masks[number] = masks.get(number, 0) | events
        poller = select.poll()
        for number, mask in masks.items():
            poller.register(number, mask)
        try:
            ready = poller.poll(timeout_ms)
        except OSError as exc:
            raise UnixError("poll", exc.errno or 0) from exc
        if not ready:
            return Result.TIMEOUT
        revents_by_fd = dict(ready)

        for rule, events in polled:
            assert rule.fd is not None
            revents = revents_by_fd.get(rule.fd.fd_num(), 0) & (events | _ALWAYS_REPORTED)

            if revents & _ERROR_EVENTS:
                self._report_poll_error(rule)
                rule.error()
                rule.cancel()
                self._drop(rule)
                continue

            poll_ready = bool(revents & events)
            poll_hup = bool(revents & select.POLLHUP)
            if poll_hup and ((events and not poll_ready) or rule.direction is Direction.OUT):
                rule.cancel()
                self._drop(rule)
                continue

            if poll_ready:
                count_before = rule.service_count()
                rule.callback()
                if (
                    count_before == rule.service_count()
                    and not rule.fd.closed()
                    and rule.interest()
                ):
                    raise RuntimeError(
                        f'EventLoop: busy wait detected: rule "{self._categories[rule.category_id]}"'
                        " did not read/write fd and is still interested"
                    )
                return Result.SUCCESS

        return Result.SUCCESS