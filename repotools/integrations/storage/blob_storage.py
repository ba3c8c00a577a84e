"""Blob storage used to publish build artifacts and logs.

Only an in-memory backend ships here; it mirrors the error behaviour of a
hosted blob service closely enough for tests to exercise callers.
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Literal
from urllib.parse import quote, urlsplit, urlunsplit

logger = logging.getLogger(__name__)

ContainerAccessPolicy = Literal["private", "blob", "container"]
BlobType = Literal["block", "append"]

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class BlobStorageError(RuntimeError):
    """Raised when a blob storage request cannot be satisfied."""

    def __init__(self, *, code: str, message: str) -> None:
        super().__init__(f"{code}: {message}")
        self.code = code


def _container_not_found() -> BlobStorageError:
    return BlobStorageError(code="ContainerNotFound", message="The specified container does not exist.")


def _blob_not_found() -> BlobStorageError:
    return BlobStorageError(code="BlobNotFound", message="The specified blob does not exist.")


@dataclass(frozen=True)
class BlobPath:
    """A container name plus the blob's path inside that container."""

    container_name: str
    blob_name: str = ""

    @classmethod
    def parse(cls, value: str | BlobPath | None) -> BlobPath:
        """Parses ``"container/blob/name"``; a leading slash is ignored."""

        if isinstance(value, BlobPath):
            return value
        if not value:
            return cls("", "")
        text = value[1:] if value.startswith("/") else value
        container_name, _, blob_name = text.partition("/")
        return cls(container_name, blob_name)

    def concatenate(self, blob_name: str) -> BlobPath:
        if not blob_name:
            return self
        return BlobPath(self.container_name, self.blob_name + blob_name)

    def __str__(self) -> str:
        return f"{self.container_name}/{self.blob_name}"


def validate_blob_name(blob_path: str | BlobPath) -> None:
    """Raises ValueError unless both the container and blob names are non-empty."""

    path = BlobPath.parse(blob_path)
    if not path.container_name:
        raise ValueError("A container name is required.")
    if not path.blob_name:
        raise ValueError(f"A blob name is required: {path}")


def construct_storage_url(account_name_or_url: str) -> str:
    """Expands a bare account name into ``https://<name>.blob.core.windows.net/``."""

    text = account_name_or_url if "://" in account_name_or_url else f"https://{account_name_or_url}"
    parts = urlsplit(text)
    host = parts.netloc
    if not host:
        raise ValueError("A storage account name or URL is required.")
    if "." not in host:
        host = f"{host}.blob.core.windows.net"
    return urlunsplit((parts.scheme or "https", host, parts.path or "/", parts.query, parts.fragment))


class BlobStorage(abc.ABC):
    """Operations every blob storage backend supports."""

    @abc.abstractmethod
    def get_url(self) -> str: ...

    def get_container_url(self, container_name: str) -> str:
        return f"{self.get_url().rstrip('/')}/{container_name}"

    def get_blob_url(self, blob_path: str | BlobPath, *, encode_blob_name: bool = False) -> str:
        path = BlobPath.parse(blob_path)
        blob_name = quote(path.blob_name, safe="") if encode_blob_name else path.blob_name
        return f"{self.get_container_url(path.container_name)}/{blob_name}"

    def get_container(self, container_name: str) -> BlobStorageContainer:
        return BlobStorageContainer(self, container_name)

    def get_prefix(self, path: str | BlobPath) -> BlobStoragePrefix:
        return BlobStoragePrefix(self, path)

    def get_blob(self, blob_path: str | BlobPath) -> BlobStorageBlob:
        return BlobStorageBlob(self, blob_path)

    def get_block_blob(self, blob_path: str | BlobPath) -> BlobStorageBlockBlob:
        return BlobStorageBlockBlob(self, blob_path)

    def get_append_blob(self, blob_path: str | BlobPath) -> BlobStorageAppendBlob:
        return BlobStorageAppendBlob(self, blob_path)

    @abc.abstractmethod
    def create_container(
        self, container_name: str, *, access_policy: ContainerAccessPolicy = "private"
    ) -> bool:
        """Creates the container; returns False when it already existed."""

    @abc.abstractmethod
    def container_exists(self, container_name: str) -> bool: ...

    @abc.abstractmethod
    def get_container_access_policy(self, container_name: str) -> ContainerAccessPolicy: ...

    @abc.abstractmethod
    def set_container_access_policy(
        self, container_name: str, access_policy: ContainerAccessPolicy
    ) -> None: ...

    @abc.abstractmethod
    def delete_container(self, container_name: str) -> bool:
        """Deletes the container; returns False when it did not exist."""

    @abc.abstractmethod
    def list_containers(self) -> list[BlobStorageContainer]: ...

    @abc.abstractmethod
    def create_block_blob(self, blob_path: str | BlobPath, *, content_type: str | None = None) -> bool:
        """Creates an empty block blob; returns False when the blob already existed."""

    @abc.abstractmethod
    def create_append_blob(self, blob_path: str | BlobPath, *, content_type: str | None = None) -> bool: ...

    @abc.abstractmethod
    def blob_exists(self, blob_path: str | BlobPath) -> bool: ...

    @abc.abstractmethod
    def get_blob_contents_as_string(self, blob_path: str | BlobPath) -> str | None:
        """Returns the blob contents, or None when the blob does not exist."""

    @abc.abstractmethod
    def set_block_blob_contents_from_string(
        self, blob_path: str | BlobPath, contents: str, *, content_type: str | None = None
    ) -> None: ...

    def set_block_blob_contents_from_file(
        self, blob_path: str | BlobPath, file_path: str | Path, *, content_type: str | None = None
    ) -> None:
        contents = Path(file_path).read_text(encoding="utf-8")
        self.set_block_blob_contents_from_string(blob_path, contents, content_type=content_type)

    @abc.abstractmethod
    def add_to_append_blob_contents_from_string(self, blob_path: str | BlobPath, contents: str) -> None: ...

    @abc.abstractmethod
    def get_blob_content_type(self, blob_path: str | BlobPath) -> str | None: ...

    @abc.abstractmethod
    def set_blob_content_type(self, blob_path: str | BlobPath, content_type: str) -> None: ...

    @abc.abstractmethod
    def delete_blob(self, blob_path: str | BlobPath) -> bool:
        """Deletes the blob; returns False when it did not exist."""

    def create_block_blob_from_string(
        self, blob_path: str | BlobPath, contents: str, *, content_type: str | None = None
    ) -> bool:
        """Creates the blob with ``contents`` unless it already exists."""

        created = self.create_block_blob(blob_path, content_type=content_type)
        if created:
            self.set_block_blob_contents_from_string(blob_path, contents, content_type=content_type)
        return created


class BlobStoragePrefix:
    """A path inside a container; blob names passed to its methods are relative to it.

    Names are appended to the prefix as-is, so a prefix that should act like a
    folder needs its trailing ``/``.
    """

    def __init__(self, storage: BlobStorage, path: str | BlobPath) -> None:
        self.storage = storage
        self.path = BlobPath.parse(path)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BlobStoragePrefix):
            return NotImplemented
        return type(self) is type(other) and self.storage is other.storage and self.path == other.path

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self.path)!r})"

    def get_url(self, *, encode_blob_name: bool = False) -> str:
        return self.storage.get_blob_url(self.path, encode_blob_name=encode_blob_name)

    def get_container(self) -> BlobStorageContainer:
        return self.storage.get_container(self.path.container_name)

    def get_blob(self, blob_name: str) -> BlobStorageBlob:
        return self.storage.get_blob(self.path.concatenate(blob_name))

    def get_block_blob(self, blob_name: str) -> BlobStorageBlockBlob:
        return self.storage.get_block_blob(self.path.concatenate(blob_name))

    def get_append_blob(self, blob_name: str) -> BlobStorageAppendBlob:
        return self.storage.get_append_blob(self.path.concatenate(blob_name))

    def get_prefix(self, blob_name: str) -> BlobStoragePrefix:
        if not blob_name:
            return self
        return self.storage.get_prefix(self.path.concatenate(blob_name))

    def create_block_blob(self, blob_name: str, *, content_type: str | None = None) -> bool:
        return self.storage.create_block_blob(self.path.concatenate(blob_name), content_type=content_type)

    def create_append_blob(self, blob_name: str, *, content_type: str | None = None) -> bool:
        return self.storage.create_append_blob(self.path.concatenate(blob_name), content_type=content_type)

    def blob_exists(self, blob_name: str) -> bool:
        return self.storage.blob_exists(self.path.concatenate(blob_name))

    def get_blob_content_type(self, blob_name: str) -> str | None:
        return self.storage.get_blob_content_type(self.path.concatenate(blob_name))

    def set_blob_content_type(self, blob_name: str, content_type: str) -> None:
        self.storage.set_blob_content_type(self.path.concatenate(blob_name), content_type)

    def get_blob_contents_as_string(self, blob_name: str) -> str | None:
        return self.storage.get_blob_contents_as_string(self.path.concatenate(blob_name))

    def set_block_blob_contents_from_string(
        self, blob_name: str, contents: str, *, content_type: str | None = None
    ) -> None:
        self.storage.set_block_blob_contents_from_string(
            self.path.concatenate(blob_name), contents, content_type=content_type
        )

    def add_to_append_blob_contents_from_string(self, blob_name: str, contents: str) -> None:
        self.storage.add_to_append_blob_contents_from_string(self.path.concatenate(blob_name), contents)

    def delete_blob(self, blob_name: str) -> bool:
        return self.storage.delete_blob(self.path.concatenate(blob_name))


class BlobStorageContainer(BlobStoragePrefix):
    """A container; behaves as the empty prefix inside it."""

    def __init__(self, storage: BlobStorage, name: str) -> None:
        super().__init__(storage, BlobPath(name, ""))

    @property
    def name(self) -> str:
        return self.path.container_name

    def get_url(self, *, encode_blob_name: bool = False) -> str:
        return self.storage.get_container_url(self.name)

    def get_container(self) -> BlobStorageContainer:
        return self

    def create(self, *, access_policy: ContainerAccessPolicy = "private") -> bool:
        return self.storage.create_container(self.name, access_policy=access_policy)

    def exists(self) -> bool:
        return self.storage.container_exists(self.name)

    def get_access_policy(self) -> ContainerAccessPolicy:
        return self.storage.get_container_access_policy(self.name)

    def set_access_policy(self, access_policy: ContainerAccessPolicy) -> None:
        self.storage.set_container_access_policy(self.name, access_policy)

    def delete(self) -> bool:
        return self.storage.delete_container(self.name)


class BlobStorageBlob:
    """Operations shared by block and append blobs."""

    def __init__(self, storage: BlobStorage, path: str | BlobPath) -> None:
        self.storage = storage
        self.path = BlobPath.parse(path)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BlobStorageBlob):
            return NotImplemented
        return type(self) is type(other) and self.storage is other.storage and self.path == other.path

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self.path)!r})"

    def get_url(self, *, encode_blob_name: bool = False) -> str:
        return self.storage.get_blob_url(self.path, encode_blob_name=encode_blob_name)

    def exists(self) -> bool:
        return self.storage.blob_exists(self.path)

    def delete(self) -> bool:
        return self.storage.delete_blob(self.path)

    def get_contents_as_string(self) -> str | None:
        return self.storage.get_blob_contents_as_string(self.path)

    def get_content_type(self) -> str | None:
        return self.storage.get_blob_content_type(self.path)

    def set_content_type(self, content_type: str) -> None:
        self.storage.set_blob_content_type(self.path, content_type)


class BlobStorageBlockBlob(BlobStorageBlob):
    def create(self, *, content_type: str | None = None) -> bool:
        return self.storage.create_block_blob(self.path, content_type=content_type)

    def set_contents_from_string(self, contents: str, *, content_type: str | None = None) -> None:
        self.storage.set_block_blob_contents_from_string(self.path, contents, content_type=content_type)

    def set_contents_from_file(self, file_path: str | Path, *, content_type: str | None = None) -> None:
        self.storage.set_block_blob_contents_from_file(self.path, file_path, content_type=content_type)


class BlobStorageAppendBlob(BlobStorageBlob):
    def create(self, *, content_type: str | None = None) -> bool:
        return self.storage.create_append_blob(self.path, content_type=content_type)

    def add_to_contents(self, contents: str) -> None:
        self.storage.add_to_append_blob_contents_from_string(self.path, contents)


@dataclass
class _Blob:
    contents: str
    content_type: str
    blob_type: BlobType


@dataclass
class _Container:
    name: str
    access_policy: ContainerAccessPolicy
    blobs: dict[str, _Blob]


class InMemoryBlobStorage(BlobStorage):
    """Blob storage kept in process memory."""

    def __init__(self, account_name_or_url: str = "https://fake.storage.com/") -> None:
        self._url = construct_storage_url(account_name_or_url)
        self._containers: dict[str, _Container] = {}

    def get_url(self) -> str:
        return self._url

    def _container(self, container_name: str) -> _Container:
        if not container_name or container_name != container_name.lower():
            raise BlobStorageError(
                code="InvalidResourceName",
                message="The specified resource name contains invalid characters.",
            )
        container = self._containers.get(container_name)
        if container is None:
            raise _container_not_found()
        return container

    def _blob(self, blob_path: str | BlobPath) -> _Blob:
        path = BlobPath.parse(blob_path)
        container = self._container(path.container_name)
        validate_blob_name(path)
        blob = container.blobs.get(path.blob_name)
        if blob is None:
            raise _blob_not_found()
        return blob

    def _find_blob(self, blob_path: str | BlobPath) -> _Blob | None:
        path = BlobPath.parse(blob_path)
        validate_blob_name(path)
        try:
            container = self._container(path.container_name)
        except BlobStorageError as exc:
            if exc.code != "ContainerNotFound":
                raise
            return None
        return container.blobs.get(path.blob_name)

    def create_container(
        self, container_name: str, *, access_policy: ContainerAccessPolicy = "private"
    ) -> bool:
        try:
            self._container(container_name)
        except BlobStorageError as exc:
            if exc.code != "ContainerNotFound":
                raise
        else:
            return False
        self._containers[container_name] = _Container(
            name=container_name, access_policy=access_policy, blobs={}
        )
        logger.info("Created container %s", container_name)
        return True

    def container_exists(self, container_name: str) -> bool:
        try:
            self._container(container_name)
        except BlobStorageError as exc:
            if exc.code != "ContainerNotFound":
                raise
            return False
        return True

    def get_container_access_policy(self, container_name: str) -> ContainerAccessPolicy:
        return self._container(container_name).access_policy

    def set_container_access_policy(
        self, container_name: str, access_policy: ContainerAccessPolicy
    ) -> None:
        self._container(container_name).access_policy = access_policy

    def delete_container(self, container_name: str) -> bool:
        if not self.container_exists(container_name):
            return False
        del self._containers[container_name]
        logger.info("Deleted container %s", container_name)
        return True

    def list_containers(self) -> list[BlobStorageContainer]:
        return [self.get_container(name) for name in self._containers]

    def _create_blob(self, blob_path: str | BlobPath, blob_type: BlobType, content_type: str | None) -> bool:
        path = BlobPath.parse(blob_path)
        container = self._container(path.container_name)
        validate_blob_name(path)
        if path.blob_name in container.blobs:
            return False
        container.blobs[path.blob_name] = _Blob(
            contents="", content_type=content_type or DEFAULT_CONTENT_TYPE, blob_type=blob_type
        )
        return True

    def create_block_blob(self, blob_path: str | BlobPath, *, content_type: str | None = None) -> bool:
        return self._create_blob(blob_path, "block", content_type)

    def create_append_blob(self, blob_path: str | BlobPath, *, content_type: str | None = None) -> bool:
        return self._create_blob(blob_path, "append", content_type)

    def blob_exists(self, blob_path: str | BlobPath) -> bool:
        path = BlobPath.parse(blob_path)
        try:
            container = self._container(path.container_name)
        except BlobStorageError as exc:
            if exc.code != "ContainerNotFound":
                raise
            return False
        return path.blob_name in container.blobs

    def get_blob_contents_as_string(self, blob_path: str | BlobPath) -> str | None:
        blob = self._find_blob(blob_path)
        return None if blob is None else blob.contents

    def set_block_blob_contents_from_string(
        self, blob_path: str | BlobPath, contents: str, *, content_type: str | None = None
    ) -> None:
        path = BlobPath.parse(blob_path)
        container = self._container(path.container_name)
        validate_blob_name(path)
        blob = container.blobs.get(path.blob_name)
        if blob is None:
            container.blobs[path.blob_name] = _Blob(
                contents=contents,
                content_type=content_type or DEFAULT_CONTENT_TYPE,
                blob_type="block",
            )
            return
        blob.contents = contents
        blob.content_type = content_type or DEFAULT_CONTENT_TYPE

    def add_to_append_blob_contents_from_string(self, blob_path: str | BlobPath, contents: str) -> None:
        self._blob(blob_path).contents += contents

    def get_blob_content_type(self, blob_path: str | BlobPath) -> str | None:
        blob = self._find_blob(blob_path)
        return None if blob is None else blob.content_type

    def set_blob_content_type(self, blob_path: str | BlobPath, content_type: str) -> None:
        self._blob(blob_path).content_type = content_type

    def delete_blob(self, blob_path: str | BlobPath) -> bool:
        path = BlobPath.parse(blob_path)
        validate_blob_name(path)
        container = self._container(path.container_name)
        return container.blobs.pop(path.blob_name, None) is not None
