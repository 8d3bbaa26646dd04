"""
Options Validator

Normalizes raw upload options into an UploadRequest. Pure and synchronous;
validating an already validated request returns an equal request.
"""

import os
from typing import Any, Mapping, Optional, Union

from .environment import UploadEnvironment
from .exceptions import ValidationError
from .models import MAP_ID_SEPARATOR, SourceKind, UploadRequest

REQUIRED_STRINGS = ("account", "access_token", "map_id")


def validate_options(
    options: Union[Mapping[str, Any], UploadRequest, None],
    environment: Optional[UploadEnvironment] = None,
) -> UploadRequest:
    """
    Validate upload options and fill in process-wide defaults.

    Args:
        options: Mapping with ``file`` or ``stream``, ``account``,
            ``access_token``, ``map_id`` and optional ``length``,
            ``host_url``, ``proxy``; or an UploadRequest
        environment: Source of the default proxy and host URL

    Returns:
        Normalized UploadRequest

    Raises:
        ValidationError: On the first rule the options break
    """
    if isinstance(options, UploadRequest):
        options = options.to_options()
    if options is not None and not isinstance(options, Mapping):
        raise ValidationError("Upload options must be a mapping")
    options = dict(options or {})
    environment = environment or UploadEnvironment()

    file = options.get("file")
    stream = options.get("stream")

    if file is None and stream is None:
        raise ValidationError('"file" or "stream" option required')
    if file is not None and stream is not None:
        raise ValidationError('Only one of "file" or "stream" may be given')
    if file is not None and not isinstance(file, (str, os.PathLike)):
        raise ValidationError('"file" must be a path')
    if stream is not None and not callable(getattr(stream, "read", None)):
        raise ValidationError('"stream" must be a readable binary stream')

    for name in REQUIRED_STRINGS:
        value = options.get(name)
        if not value or not isinstance(value, str):
            raise ValidationError(f'"{name}" option required')

    account = options["account"]
    map_id = options["map_id"]
    prefix, separator, suffix = map_id.partition(MAP_ID_SEPARATOR)
    if prefix != account or not separator or not suffix:
        raise ValidationError(f'Invalid map_id "{map_id}" for account "{account}"')

    length = options.get("length")
    if length is not None:
        if isinstance(length, bool) or not isinstance(length, int) or length < 0:
            raise ValidationError('"length" must be a non-negative integer')

    return UploadRequest(
        source_kind=SourceKind.FILE if file is not None else SourceKind.STREAM,
        file=file,
        stream=stream,
        length=length,
        account=account,
        access_token=options["access_token"],
        map_id=map_id,
        host_url=(options.get("host_url") or environment.default_host_url()).rstrip("/"),
        proxy=options.get("proxy") or environment.default_proxy(),
    )
