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
"""Helpers attaching the shared logger and host to jailconf objects."""
import typing

import libjailconf.Logger


def init_logger(
    self: typing.Any,
    logger: typing.Optional['libjailconf.Logger.Logger']=None
) -> 'libjailconf.Logger.Logger':
    """Return the logger of an object, attaching one on first use."""
    if "logger" in self.__dict__:
        return typing.cast(
            'libjailconf.Logger.Logger',
            self.__dict__["logger"]
        )

    if logger is None:
        logger = libjailconf.Logger.Logger()
    self.__dict__["logger"] = logger
    return logger


def init_host(
    self: typing.Any,
    host: typing.Optional['libjailconf.Host.HostGenerator']=None
) -> 'libjailconf.Host.HostGenerator':
    """
    Return the host an object operates on.

    Objects created without a host get their own HostGenerator sharing the
    logger of the object. Its HostConfig is read on first access.
    """
    if "host" in self.__dict__:
        return typing.cast(
            'libjailconf.Host.HostGenerator',
            self.__dict__["host"]
        )

    import libjailconf.Host
    if host is None:
        return libjailconf.Host.HostGenerator(logger=init_logger(self))

    if isinstance(host, libjailconf.Host.HostGenerator) is False:
        raise TypeError(
            f"Expected a HostGenerator, but got {type(host).__name__}"
        )
    return host
