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
"""
Render jail configs and compare them with the files on disk.

Jail configs are rendered from jinja2 templates. A config file is only ever
considered in sync when it is byte-identical to the rendered template. This
guards the two policies of the orchestrator:

    create: an existing identical config is skipped, a different one fails
    delete: a jail is only removed when its config was not edited by hand
"""
import typing

import jinja2
import jinja2.meta

import libjailconf.errors
import libjailconf.helpers_object

# MyPy
import libjailconf.Host  # noqa: F401
import libjailconf.JailRecord  # noqa: F401
import libjailconf.Logger  # noqa: F401

DEFAULT_TEMPLATE = """{{ name }} {
    host.hostname = "{{ name }}.jail";
    path = "{{ root_path }}";

    vnet;
    vnet.interface = "{{ interface_b }}";

    $ip4_addr = "{{ ip4_addr }}";
    $gw = "{{ gateway }}";

    exec.prestart  = "ifconfig {{ interface }} create up";
    exec.prestart += "ifconfig {{ bridge }} addm {{ interface_a }}";
    exec.start     = "ifconfig lo0 up 127.0.0.1";
    exec.start    += "ifconfig {{ interface_b }} up $ip4_addr";
    exec.start    += "route add default $gw";
    exec.start    += "sh /etc/rc";
    exec.stop      = "sh /etc/rc.shutdown";
    exec.poststop  = "ifconfig {{ interface_a }} destroy";

    mount.devfs;
    devfs_ruleset = 5;
    persist;
}
"""

DEFAULT_TEMPLATE_NAME = "<default>"


def _get_environment() -> jinja2.Environment:
    return jinja2.Environment(  # nosec: B701 jail.conf is not HTML
        undefined=jinja2.StrictUndefined,
        keep_trailing_newline=True,
        autoescape=False
    )


class JailConfTemplate:
    """A jinja2 template of a jail config."""

    name: str
    source: str
    _template: jinja2.Template
    _fields: typing.Set[str]

    def __init__(
        self,
        source: str=DEFAULT_TEMPLATE,
        name: str=DEFAULT_TEMPLATE_NAME,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        self.logger = libjailconf.helpers_object.init_logger(self, logger)
        self.name = name
        self.source = source

        environment = _get_environment()
        try:
            ast = environment.parse(source)
            self._fields = set(jinja2.meta.find_undeclared_variables(ast))
            self._template = environment.from_string(source)
        except jinja2.TemplateSyntaxError as e:
            raise libjailconf.errors.TemplateSyntaxError(
                template_name=name,
                reason=f"{e.message} (line {e.lineno})",
                logger=self.logger
            )

    @classmethod
    def from_file(
        cls,
        path: str,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> 'JailConfTemplate':
        """Load a template from a file."""
        try:
            with open(path, "r", encoding="UTF-8") as f:
                source = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise libjailconf.errors.ConfigReadError(
                file=path,
                reason=str(e),
                logger=logger
            )
        return cls(source=source, name=path, logger=logger)

    @property
    def fields(self) -> typing.Set[str]:
        """Return the names of all fields the template references."""
        return set(self._fields)

    def validate(self, record: 'libjailconf.JailRecord.JailRecord') -> None:
        """Raise MissingTemplateField when the record lacks a field."""
        missing_fields = self._fields - set(record.template_context.keys())
        if len(missing_fields) == 0:
            return
        raise libjailconf.errors.MissingTemplateField(
            name=record.name,
            fields=list(missing_fields),
            logger=self.logger
        )

    def render(self, record: 'libjailconf.JailRecord.JailRecord') -> bytes:
        """Render the jail config of a record."""
        self.validate(record)
        try:
            output = self._template.render(**record.template_context)
        except jinja2.UndefinedError as e:
            raise libjailconf.errors.TemplateError(
                message=(
                    f"The template {self.name} uses an undefined value "
                    f"for '{record.name}': {e.message}"
                ),
                logger=self.logger
            )
        except jinja2.TemplateError as e:
            raise libjailconf.errors.TemplateError(
                message=f"The template {self.name} failed: {e}",
                logger=self.logger
            )
        except Exception as e:
            raise libjailconf.errors.RenderError(
                name=record.name,
                reason=str(e),
                logger=self.logger
            )
        return output.encode("UTF-8")


class ConfigReconciler:
    """Decide whether jail configs on disk match their template."""

    template: JailConfTemplate

    def __init__(
        self,
        template: typing.Optional[JailConfTemplate]=None,
        host: typing.Optional['libjailconf.Host.HostGenerator']=None,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        self.logger = libjailconf.helpers_object.init_logger(self, logger)
        self.host = libjailconf.helpers_object.init_host(self, host)
        if template is None:
            template = JailConfTemplate(logger=self.logger)
        self.template = template

    def validate(self, record: 'libjailconf.JailRecord.JailRecord') -> None:
        """Check that the template can be rendered for the record."""
        self.template.validate(record)

    def render(self, record: 'libjailconf.JailRecord.JailRecord') -> bytes:
        """Render the config of a jail."""
        return self.template.render(record)

    def compare(self, rendered: bytes, path: str) -> bool:
        """Return True when the file content equals the rendered bytes."""
        return (self.host.read_config_file(path) == rendered) is True

    def matches(
        self,
        record: 'libjailconf.JailRecord.JailRecord',
        path: typing.Optional[str]=None
    ) -> bool:
        """Return True when the jail config on disk is in sync."""
        conf_path = record.conf_path if (path is None) else path
        rendered = self.render(record)
        matching = self.compare(rendered, conf_path)
        if matching is False:
            self.logger.debug(
                f"{conf_path} differs from the rendered template"
            )
        return matching

    def require_match(
        self,
        record: 'libjailconf.JailRecord.JailRecord',
        path: typing.Optional[str]=None
    ) -> None:
        """Raise ConfigDrift when the jail config was modified."""
        conf_path = record.conf_path if (path is None) else path
        if self.matches(record, conf_path) is True:
            return
        raise libjailconf.errors.ConfigDrift(
            name=record.name,
            conf_path=conf_path,
            logger=self.logger
        )


def render(
    template: JailConfTemplate,
    record: 'libjailconf.JailRecord.JailRecord'
) -> bytes:
    """Render the config of a jail with a template."""
    return template.render(record)


def compare(
    rendered: bytes,
    path: str,
    logger: typing.Optional['libjailconf.Logger.Logger']=None
) -> bool:
    """Return True when the file contains exactly the rendered bytes."""
    try:
        with open(path, "rb") as f:
            return (f.read() == rendered) is True
    except OSError as e:
        raise libjailconf.errors.ConfigReadError(
            file=path,
            reason=str(e),
            logger=logger
        )
