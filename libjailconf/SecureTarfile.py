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
"""Extract base archives without writing outside of the destination."""
import typing
import tarfile

import libjailconf.errors

# MyPy
import libjailconf.Logger  # noqa: F401


class SecureTarfile:
    """
    Tarfile reader that refuses archives with unsafe member names.

    FreeBSD base archives are created relative to the system root, so that
    every member name begins with './'. All members are verified before the
    first file is written to the destination.
    """

    file: str
    compression_format: typing.Optional[str]
    logger: typing.Optional['libjailconf.Logger.Logger']

    def __init__(
        self,
        file: str,
        compression_format: typing.Optional[str]="xz",
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        self.file = file
        self.compression_format = compression_format
        self.logger = logger

    def _log(self, message: str, level: str="verbose") -> None:
        if self.logger is None:
            return
        self.logger.log(message, level)

    @property
    def mode(self) -> str:
        """Return the mode the archive is opened with."""
        if self.compression_format is None:
            return "r"
        return f"r:{self.compression_format}"

    def extract(self, destination: str) -> None:
        """
        Verify and extract the archive.

        Args:

            destination (str):

                Existing directory the archive is extracted to.
        """
        try:
            with tarfile.open(self.file, self.mode) as tar:
                self._log(f"Verifying file structure in {self.file}")
                self._check_tar_members(tar.getmembers())
                self._log(f"Extracting {self.file} to {destination}")
                self._extractall(tar, destination)
        except (tarfile.TarError, EOFError, OSError) as e:
            raise libjailconf.errors.ArchiveExtractionFailed(
                archive_path=self.file,
                destination=destination,
                reason=str(e),
                logger=self.logger
            )
        self._log(f"{self.file} was extracted to {destination}")

    def _extractall(self, tar: tarfile.TarFile, destination: str) -> None:
        # base archives carry device nodes and setuid binaries
        if hasattr(tarfile, "fully_trusted_filter"):
            tar.extractall(destination, filter="fully_trusted")
        else:
            tar.extractall(destination)  # nosec: B202

    def _check_tar_members(
        self,
        tar_infos: typing.List[tarfile.TarInfo]
    ) -> None:
        for tar_member in tar_infos:
            self._check_tar_info(tar_member)

    def _check_tar_info(self, tar_info: tarfile.TarInfo) -> None:
        reason = self._get_unsafe_reason(tar_info.name)
        if (reason is None) and tar_info.islnk():
            reason = self._get_unsafe_reason(tar_info.linkname)
        if reason is None:
            return

        raise libjailconf.errors.IllegalArchiveContent(
            asset_name=self.file,
            reason=f"{reason} ({tar_info.name})",
            logger=self.logger
        )

    def _get_unsafe_reason(self, name: str) -> typing.Optional[str]:
        if name == ".":
            return None
        if name.startswith("./") is False:
            return "Names in archives must be relative and begin with './'"
        if ".." in name.split("/"):
            return "Names in archives must not contain '..'"
        return None


def extract(
    file: str,
    destination: str,
    compression_format: typing.Optional[str]="xz",
    logger: typing.Optional['libjailconf.Logger.Logger']=None
) -> None:
    """
    Verify and extract an archive.

    Args:

        file (str):

            Path to the source archive file.

        destination (str):

            Path to the extraction destination folder.

        compression_format (str): (default="xz")

            The tarfile compression of the archive or None.

        logger (libjailconf.Logger.Logger):

            Logging is enabled when a Logger instance is provided.
    """
    secure_tarfile = SecureTarfile(
        file,
        compression_format=compression_format,
        logger=logger
    )
    secure_tarfile.extract(destination)
