from __future__ import annotations

import re
from typing import Callable, Protocol

from loguru import logger

from .registry import UrlRegistry

_STREAM_INF_MARKER = "EXT-X-STREAM-INF"
_PLAYLIST_EXT = ".m3u8"
_SEGMENT_EXT = ".ts"
_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")


def variant_path(root_token: str, variant_token: str) -> str:
    return f"/variant/{root_token}/{variant_token}"


def segment_path(root_token: str, segment_token: str) -> str:
    return f"/segment/{root_token}/{segment_token}"


def is_master_playlist(playlist_text: str) -> bool:
    """
    Return whether playlist text lists variant streams.

    Anything without a stream-info tag is treated as a media playlist.
    """
    return _STREAM_INF_MARKER in playlist_text


def base_directory(base_url: str) -> str:
    """
    Return `base_url` truncated after its last '/'.
    """
    return base_url[: base_url.rfind("/") + 1]


def resolve_reference(ref: str, base_url: str) -> str:
    """
    Resolve a playlist reference against the URL the playlist was fetched from.

    Absolute references (with a URI scheme) are returned unchanged; anything else
    is appended to the directory prefix of `base_url`.
    """
    if _SCHEME_RE.match(ref):
        return ref
    return base_directory(base_url) + ref


def _rewrite_lines(
    playlist_text: str, rewrite_line: Callable[[str], str | None]
) -> str:
    """
    Apply `rewrite_line` to every bare (non-tag) line of a playlist.

    `rewrite_line` receives the stripped line and returns its replacement, or
    `None` to keep the original. Blank lines, tags and line endings (LF or
    CRLF, including the trailing newline) are preserved.
    """
    out_lines: list[str] = []
    for line in playlist_text.split("\n"):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            out_lines.append(line)
            continue
        replacement = rewrite_line(stripped)
        if replacement is None:
            out_lines.append(line)
        else:
            out_lines.append(replacement + ("\r" if line.endswith("\r") else ""))
    return "\n".join(out_lines)


class PlaylistRewriterProtocol(Protocol):
    def rewrite_root(self, playlist_text: str, *, base_url: str, root_token: str) -> str: ...

    def rewrite_variant(
        self, playlist_text: str, *, base_url: str, root_token: str
    ) -> str: ...


class PlaylistRewriter:
    """
    Line-oriented M3U8 rewriter that routes every reference through the relay.

    Each discovered URL is registered in the registry on every pass, duplicates
    included, so references in a live playlist stay resolvable for as long as
    the playlist keeps listing them.
    """

    def __init__(self, registry: UrlRegistry):
        self._registry = registry

    def _variant_line(self, ref: str, base_url: str, root_token: str) -> str:
        token = self._registry.register(resolve_reference(ref, base_url))
        return variant_path(root_token, token)

    def _segment_line(self, ref: str, base_url: str, root_token: str) -> str:
        token = self._registry.register(resolve_reference(ref, base_url))
        return segment_path(root_token, token)

    def rewrite_master(self, playlist_text: str, *, base_url: str, root_token: str) -> str:
        """
        Replace every variant playlist reference with a `/variant/{root}/{token}` path.
        """

        def _rewrite(ref: str) -> str | None:
            if not ref.endswith(_PLAYLIST_EXT):
                return None
            return self._variant_line(ref, base_url, root_token)

        return _rewrite_lines(playlist_text, _rewrite)

    def rewrite_media(self, playlist_text: str, *, base_url: str, root_token: str) -> str:
        """
        Replace every `.ts` segment reference with a `/segment/{root}/{token}` path.
        """

        def _rewrite(ref: str) -> str | None:
            if not ref.endswith(_SEGMENT_EXT):
                return None
            return self._segment_line(ref, base_url, root_token)

        return _rewrite_lines(playlist_text, _rewrite)

    def rewrite_root(self, playlist_text: str, *, base_url: str, root_token: str) -> str:
        """
        Rewrite a playlist served under a registered root token.

        Parameters:
            playlist_text (str): Raw playlist text as fetched from origin.
            base_url (str): URL the playlist was fetched from; relative references resolve against it.
            root_token (str): Token the client requested; threaded into every emitted path.

        Returns:
            str: The rewritten playlist; master playlists get variant paths, media playlists segment paths.
        """
        if is_master_playlist(playlist_text):
            logger.debug("Rewriting master playlist for {}", root_token)
            return self.rewrite_master(
                playlist_text, base_url=base_url, root_token=root_token
            )
        logger.debug("Rewriting media playlist for {}", root_token)
        return self.rewrite_media(playlist_text, base_url=base_url, root_token=root_token)

    def rewrite_variant(
        self, playlist_text: str, *, base_url: str, root_token: str
    ) -> str:
        """
        Rewrite a variant playlist: segments first, then nested playlist references.

        A `.m3u8` line that also contains `.ts` is left untouched; the scan is a
        heuristic, not an M3U8 grammar.
        """
        logger.debug("Rewriting variant playlist under {}", root_token)
        rewritten = self.rewrite_media(
            playlist_text, base_url=base_url, root_token=root_token
        )

        def _nested(ref: str) -> str | None:
            if not ref.endswith(_PLAYLIST_EXT) or _SEGMENT_EXT in ref:
                return None
            return self._variant_line(ref, base_url, root_token)

        return _rewrite_lines(rewritten, _nested)
