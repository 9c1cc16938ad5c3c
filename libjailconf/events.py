# Copyright (c) 2017-2019, Stefan Grönke
# Copyright (c) 2014-2018, iocage
# All rights reserved.
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted providing that the following conditions
# are met:
# 1. Redistributions of source code must retain the above copyright
#    notice, this list of conditions and the following disclaimer.
# 2. Redistributions in binary form must reproduce the above copyright
#    notice, this list of conditions and the following disclaimer in the
#    documentation and/or other materials provided with the distribution.
#
# THIS SOFTWARE IS PROVIDED BY THE AUTHOR ``AS IS'' AND ANY EXPRESS OR
# IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE IMPLIED
# WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE
# ARE DISCLAIMED.  IN NO EVENT SHALL THE AUTHOR BE LIABLE FOR ANY
# DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL
# DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF SUBSTITUTE GOODS
# OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION)
# HOWEVER CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN CONTRACT,
# STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING
# IN ANY WAY OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE
# POSSIBILITY OF SUCH DAMAGE.
"""jailconf events collection."""
import typing
from timeit import default_timer as timer

import libjailconf.errors

EVENT_STATUS = (
    "pending",
    "done",
    "failed"
)


class Scope(list):
    """An independent event history scope."""

    PENDING_COUNT: int

    def __init__(self) -> None:
        self.PENDING_COUNT = 0
        super().__init__([])


class JailconfEvent:
    """The base event class of libjailconf."""

    _scope: Scope

    identifier: typing.Optional[str]
    _started_at: float
    _stopped_at: float
    _pending: bool
    skipped: bool
    done: bool
    reverted: bool
    error: typing.Optional[typing.Union[bool, str, BaseException]]
    rollback_errors: typing.List[BaseException]
    _rollback_steps: typing.List[typing.Callable[[], typing.Optional[
        typing.Generator['JailconfEvent', None, None]
    ]]]
    _child_events: typing.List['JailconfEvent']

    def __init__(
        self,
        message: typing.Optional[str]=None,
        scope: typing.Optional[Scope]=None
    ) -> None:
        """Initialize a JailconfEvent."""
        self.scope = scope

        self._pending = False
        self.skipped = False
        self.done = True
        self.reverted = False
        self.error = None
        self.rollback_errors = []
        self._rollback_steps = []
        self._child_events = []

        self.number = len(self.scope) + 1
        self.parent_count = self.scope.PENDING_COUNT
        self.scope.append(self)

        self.message = message

    @property
    def scope(self) -> Scope:
        """Return the currently used event scope."""
        return self._scope

    @scope.setter
    def scope(self, scope: typing.Optional[Scope]) -> None:
        if scope is None:
            self._scope = Scope()
        else:
            self._scope = scope

    def get_state_string(
        self,
        error: str="failed",
        skipped: str="skipped",
        done: str="done",
        pending: str="pending"
    ) -> str:
        """Get a humanreadable string according to the event state."""
        if self.error is not None:
            return error

        if self.skipped is True:
            return skipped

        if self.done is True:
            return done

        return pending

    def child_event(self, event: 'JailconfEvent') -> 'JailconfEvent':
        """Append the event to the child_events for later notification."""
        self._child_events.append(event)
        return event

    def add_rollback_step(
        self,
        method: typing.Callable[[], typing.Optional[
            typing.Generator['JailconfEvent', None, None]
        ]]
    ) -> None:
        """Add a rollback step that is executed when the event fails."""
        self._rollback_steps.append(method)

    def rollback(
        self
    ) -> typing.Generator['JailconfEvent', None, None]:
        """
        Rollback all rollback steps in reverse order.

        A failing rollback step does not stop the remaining steps. The error
        is collected in rollback_errors instead.
        """
        if self.reverted is True:
            return

        self.reverted = True

        # Notify child_events in reverse order
        for event in reversed(self._child_events):
            yield from event.rollback()
            self.rollback_errors.extend(event.rollback_errors)

        # Execute rollback steps in reverse order
        reversed_rollback_steps = reversed(self._rollback_steps)
        self._rollback_steps = []
        for revert_step in reversed_rollback_steps:
            try:
                revert_events = revert_step()
                if revert_events is not None:
                    yield from revert_events
            except Exception as e:
                self.rollback_errors.append(e)

    @property
    def type(self) -> str:
        """
        Return the events type.

        The event type is obtained from a JailconfEvent's class name.
        """
        return type(self).__name__

    @property
    def pending(self) -> bool:
        """Return True if the event is pending."""
        return self._pending

    @pending.setter
    def pending(self, state: bool) -> None:
        """
        Set the pending state.

        Changes invoke internal processing as for example the calculation of
        the event duration and the global PENDING_COUNT.
        """
        current = self._pending
        new_state = (state is True)

        if current == new_state:
            return

        if new_state is True:
            try:
                self._started_at
                raise libjailconf.errors.EventAlreadyFinished(event=self)
            except AttributeError:
                self._started_at = float(timer())
        if new_state is False:
            self._stopped_at = float(timer())

        self._pending = new_state
        self.scope.PENDING_COUNT += 1 if (state is True) else -1

    @property
    def duration(self) -> typing.Optional[float]:
        """Return the duration of finished events."""
        try:
            return self._stopped_at - self._started_at
        except AttributeError:
            return None

    def _update_message(
        self,
        message: typing.Optional[str]=None,
    ) -> None:
        self.message = message

    def begin(self, message: typing.Optional[str]=None) -> 'JailconfEvent':
        """Begin an event."""
        self._update_message(message)
        self.pending = True
        self.done = False
        self.parent_count = self.scope.PENDING_COUNT - 1
        return self

    def end(self, message: typing.Optional[str]=None) -> 'JailconfEvent':
        """Successfully finish an event."""
        self._update_message(message)
        self.done = True
        self.pending = False
        self.parent_count = self.scope.PENDING_COUNT
        return self

    def step(self, message: typing.Optional[str]=None) -> 'JailconfEvent':
        """Reflect partial event progress."""
        self._update_message(message)
        self.parent_count = self.scope.PENDING_COUNT
        return self

    def skip(self, message: typing.Optional[str]=None) -> 'JailconfEvent':
        """Mark an event as skipped."""
        self._update_message(message)
        self.skipped = True
        self.pending = False
        self.parent_count = self.scope.PENDING_COUNT
        return self

    def fail(
        self,
        exception: typing.Union[bool, str, BaseException]=True,
        message: typing.Optional[str]=None
    ) -> 'JailconfEvent':
        """End an event with a failure."""
        list(self.fail_generator(exception=exception, message=message))
        return self

    def fail_generator(
        self,
        exception: typing.Union[bool, str, BaseException]=True,
        message: typing.Optional[str]=None
    ) -> typing.Generator['JailconfEvent', None, None]:
        """
        End an event with a failure via a generator of rollback steps.

        Errors of failed rollback steps are appended to the exception.
        """
        self._update_message(message)
        self.error = exception

        yield from self.rollback()

        if isinstance(exception, libjailconf.errors.JailconfException):
            for rollback_error in self.rollback_errors:
                exception.append_cleanup_error(rollback_error)

        self.pending = False
        self.parent_count = self.scope.PENDING_COUNT

        yield self

    def __hash__(self) -> typing.Any:
        """Compare an event by its type and identifier."""
        has_identifier = ("identifier" in self.__dir__()) is True
        identifier = "generic" if has_identifier is False else self.identifier
        return hash((self.type, identifier))


# Jail


class JailEvent(JailconfEvent):
    """Any event related to a jail."""

    jail: 'libjailconf.Jail.JailGenerator'
    identifier: typing.Optional[str]

    def __init__(
        self,
        jail: 'libjailconf.Jail.JailGenerator',
        message: typing.Optional[str]=None,
        scope: typing.Optional[Scope]=None
    ) -> None:

        try:
            self.identifier = jail.name
        except AttributeError:
            self.identifier = None
        self.jail = jail
        JailconfEvent.__init__(self, message=message, scope=scope)


class JailCreate(JailEvent):
    """Create a jail from a base archive."""

    pass


class JailValidation(JailEvent):
    """Validate the jail definition and its template fields."""

    pass


class JailSlotAllocation(JailEvent):
    """Allocate or verify the slot of a jail."""

    pass


class JailConfigCheck(JailEvent):
    """Compare an existing jail config with the rendered template."""

    pass


class JailRootCreation(JailEvent):
    """Create the root directory of a jail."""

    pass


class BaseArchiveExtraction(JailEvent):
    """Extract the base archive into a jails root directory."""

    pass


class JailConfigWrite(JailEvent):
    """Write the rendered jail config."""

    pass


class JailDestroy(JailEvent):
    """Delete a jails config and root directory."""

    pass


class JailDestroyConfirmation(JailDestroy):
    """Ask for confirmation before destroying a jail."""

    pass


class JailConfigRemoval(JailDestroy):
    """Remove a jails config file."""

    pass


class JailFlagsClear(JailDestroy):
    """Clear immutable file flags in a jails root directory."""

    pass


class JailRootRemoval(JailDestroy):
    """Remove the root directory of a jail."""

    pass


# Release


class ReleaseEvent(JailconfEvent):
    """Event related to a base release."""

    release: 'libjailconf.Release.ReleaseGenerator'

    def __init__(
        self,
        release: 'libjailconf.Release.ReleaseGenerator',
        message: typing.Optional[str]=None,
        scope: typing.Optional[Scope]=None
    ) -> None:

        self.identifier = release.name
        self.release = release
        JailconfEvent.__init__(self, message=message, scope=scope)


class FetchRelease(ReleaseEvent):
    """Fetch release assets."""

    pass


class ReleaseDownload(FetchRelease):
    """Download the base archive of a release."""

    pass


# Host


class HostEvent(JailconfEvent):
    """Event related to the jail host."""

    def __init__(
        self,
        message: typing.Optional[str]=None,
        scope: typing.Optional[Scope]=None
    ) -> None:
        self.identifier = None
        JailconfEvent.__init__(self, message=message, scope=scope)


class HostInit(HostEvent):
    """Prepare the host for jailconf."""

    pass


class JailConfInclude(HostEvent):
    """Include the jail config directory in the main jail.conf."""

    pass


class DirectoryCreation(HostEvent):
    """Create a directory used by jailconf."""

    def __init__(
        self,
        directory: str,
        message: typing.Optional[str]=None,
        scope: typing.Optional[Scope]=None
    ) -> None:
        JailconfEvent.__init__(self, message=message, scope=scope)
        self.identifier = directory
