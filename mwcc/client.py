#!/usr/bin/env python3
"""
MediaWiki Action API client.

Provides:
- GET/POST requests with parameter normalization and a uniform error type
- Action token caching with one automatic retry on "badtoken"
- Automatically continued queries
- Mass queries that split multi-value parameters by the API's ceiling
- Login and a few edit/query helpers

Usage:
    from mwcc import MWCC, ApiError

    api = MWCC("https://test.wikipedia.org/w/api.php")
    try:
        res = api.get({"meta": ["userinfo", "siteinfo"]})
    except ApiError as err:
        print(err.code, err.info)

Parameters default to action=query&format=json&formatversion=2. Lists are
sent pipe-joined, and False/None values are left out of the request.
"""

import dataclasses
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Optional, Union
from urllib.parse import urlparse

import requests

from mwcc.config import ClientConfig
from mwcc.errors import (
    ABORTED,
    BAD_NAMED_TOKEN,
    BAD_TOKEN,
    EMPTY_FIELD,
    HTTP,
    INVALID_JSON,
    INVALID_LIMIT,
    INVALID_TITLE,
    NO_MULTIVALUE,
    NOCREATE_MISSING,
    NONARRAY_EXCEPTION,
    NONIDENTICAL_ARRAYS,
    OK_BUT_EMPTY,
    PAGE_MISSING,
    ApiError,
)
from mwcc.params import (
    DEFAULT_PARAMS,
    ApiParams,
    is_multivalue,
    multivalue_item,
    normalize_params,
    to_wire,
)
from mwcc.tokens import TokenCache, TokenType, canonical_token_type

# Ceilings for multi-value parameters
APILIMIT_DEFAULT = 50
APILIMIT_HIGH = 500


class AbortHandle:
    """Cancellation flag for one outstanding request."""

    def __init__(self):
        self._event = threading.Event()

    def abort(self) -> None:
        self._event.set()

    @property
    def aborted(self) -> bool:
        return self._event.is_set()


class MWCC:
    """An interface to the MediaWiki Action API of one site."""

    def __init__(
        self,
        api_url: str,
        config: Optional[ClientConfig] = None,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize a client for one MediaWiki site.

        Args:
            api_url: API endpoint as a full URL (e.g., https://en.wikipedia.org/w/api.php)
            config: Client settings (defaults if not provided)
            session: Existing requests session to use (one is created if not provided)
            logger: Logger instance (creates one if not provided)

        Raises:
            ValueError: api_url is empty
        """
        if not api_url:
            raise ValueError("No endpoint is passed to the MWCC constructor")

        self.api_url = api_url
        self.config = config or ClientConfig()
        self.logger = logger or logging.getLogger(f"mwcc.{urlparse(api_url).netloc or 'client'}")

        # The session's cookie jar keeps the login alive between requests
        self.session = session or requests.Session()
        self.session.headers.update({
            "User-Agent": self.config.effective_user_agent,
            "Accept": "application/json",
        })
        self.session.headers.update(self.config.headers)

        self.anon = True
        self.apilimit = APILIMIT_DEFAULT
        self.tokens = TokenCache()

        # Handles of requests that have not settled yet
        self._aborts: set[AbortHandle] = set()
        self._aborts_lock = threading.Lock()

    # ------------------------------------------------------------------ login

    @classmethod
    def init(
        cls,
        api_url: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        oauth2_access_token: Optional[str] = None,
        user_agent: Optional[str] = None,
        config: Optional[ClientConfig] = None,
    ) -> Optional["MWCC"]:
        """
        Log in to a wiki and return a client for it.

        Either username and password (a bot password works) or an OAuth 2
        access token must be given.

        Returns:
            The logged-in client, or None if login failed

        Raises:
            ValueError: api_url is empty or credentials are missing
        """
        if not api_url:
            raise ValueError("No API endpoint is provided")
        use_password = bool(username and password)
        if not use_password and not oauth2_access_token:
            raise ValueError("Required credentials are missing")

        config = config or ClientConfig()
        if user_agent:
            config = dataclasses.replace(config, user_agent=user_agent)
        client = cls(api_url, config)

        if use_password:
            try:
                token = client.get_token(TokenType.LOGIN, {"assert": None})
                res = client.post({
                    "action": "login",
                    "lgname": username,
                    "lgpassword": password,
                    "lgtoken": token,
                    "assert": None,
                })
            except ApiError as err:
                client.logger.error(f"Login failed: {err}")
                return None
            result = (res.get("login") or {}).get("result")
            if result != "Success":
                client.logger.error(f"Login failed: {res.get('login')}")
                return None
            client.logger.info(f"Logged in as {username}")
        else:
            client.session.headers["Authorization"] = f"Bearer {oauth2_access_token}"

        # Tokens fetched before login belong to the anonymous session
        client.tokens.clear()

        user_info = client.get_user_info()
        if user_info is None or user_info.get("anon"):
            client.logger.error("Login failed: the session is not authenticated")
            return None

        client.anon = False
        if "apihighlimits" in user_info.get("rights", []):
            client.apilimit = APILIMIT_HIGH
        return client

    # --------------------------------------------------------------- requests

    def abort(self) -> None:
        """
        Mark all unfinished requests issued by this client as aborted.

        A request already handed to the transport is not interrupted: it runs
        until the server answers or the timeout passes (a POST may still take
        effect on the wiki), and only its outcome becomes an "aborted" ApiError.
        """
        with self._aborts_lock:
            handles = list(self._aborts)
            self._aborts.clear()
        for handle in handles:
            handle.abort()
        if handles:
            self.logger.debug(f"Aborted {len(handles)} request(s)")

    def get(self, params: ApiParams, **options: Any) -> dict:
        """Perform an API GET request. See ajax()."""
        return self.ajax(params, method="GET", **options)

    def post(self, params: ApiParams, **options: Any) -> dict:
        """Perform an API POST request. See ajax()."""
        return self.ajax(params, method="POST", **options)

    def ajax(self, params: ApiParams, method: Optional[str] = None, **options: Any) -> dict:
        """
        Perform an API call (GET unless method says otherwise).

        Args:
            params: API parameters; the mapping itself is not modified
            method: "GET" or "POST"
            **options: Extra keyword arguments for requests.Session.request
                (e.g., headers, timeout)

        Returns:
            The decoded JSON response

        Raises:
            ApiError: with code "ok-but-empty", "invalidjson", "aborted",
                "http" (transport error in ``details``) or the code of an
                error reported by the API
        """
        params = dict(params)

        # The token must be the last parameter (per [[mw:API:Edit#Token]])
        token = None
        if isinstance(params.get("token"), str):
            token = params.pop("token")

        merged = dict(self.config.params)
        merged.update(DEFAULT_PARAMS)
        merged.update(params)
        if token is not None:
            # Re-added below so that it ends up last
            merged.pop("token", None)
        normalize_params(merged)

        payload = {key: to_wire(value) for key, value in merged.items()}
        if token:
            payload["token"] = token

        method = (method or "GET").upper()
        if method == "GET":
            options["params"] = payload
        else:
            # The Action API takes form-urlencoded bodies, not JSON
            options["data"] = payload
        options.setdefault("timeout", self.config.timeout)

        handle = AbortHandle()
        with self._aborts_lock:
            self._aborts.add(handle)

        try:
            response = self.session.request(method, self.api_url, **options)
            response.raise_for_status()
        except requests.RequestException as e:
            if handle.aborted:
                raise ApiError(ABORTED, "HTTP request aborted by user") from e
            self.logger.warning(f"{method} request to {self.api_url} failed: {e}")
            raise ApiError(HTTP, "HTTP request failed", details=e) from e
        finally:
            with self._aborts_lock:
                self._aborts.discard(handle)

        if handle.aborted:
            raise ApiError(ABORTED, "HTTP request aborted by user")
        return self._parse_response(response)

    @staticmethod
    def _parse_response(response: requests.Response) -> dict:
        if response is None or not response.content:
            raise ApiError(
                OK_BUT_EMPTY,
                "OK response but empty result (check HTTP headers?)",
                details=response,
            )
        try:
            data = response.json()
        except ValueError:
            # Usually the HTML of the main page
            raise ApiError(INVALID_JSON, "Invalid JSON response (check the request URL?)") from None
        if data is None:
            raise ApiError(
                OK_BUT_EMPTY,
                "OK response but empty result (check HTTP headers?)",
                details=response,
            )
        if not isinstance(data, dict):
            raise ApiError(INVALID_JSON, "Invalid JSON response (check the request URL?)")
        if data.get("error"):
            raise ApiError.from_response(data)
        return data

    def continued_query(self, params: ApiParams, limit: int = 10) -> list:
        """
        Perform a query, continuing it while the response has a ``continue`` object.

        Args:
            params: API parameters
            limit: Maximum number of requests to send

        Returns:
            The raw responses in request order. A failed request is recorded
            as its ApiError and ends the sequence.
        """
        params = dict(params)
        responses: list = []
        count = 1

        while True:
            try:
                data = self.get(params)
            except ApiError as err:
                responses.append(err)
                break

            responses.append(data)
            cont = data.get("continue")
            if not cont or count >= limit:
                break
            params.update(cont)
            count += 1

        self.logger.debug(f"Continued query finished after {len(responses)} request(s)")
        return responses

    def mass_query(
        self,
        params: ApiParams,
        fields: Union[str, list[str]],
        apilimit: Optional[int] = None,
        verbose: bool = True,
    ) -> list:
        """
        POST a query whose multi-value parameter may exceed the API's ceiling.

        Pass the multi-value field(s) as lists and name them in ``fields``;
        one request is sent per chunk of at most ``apilimit`` values, with
        every named field set to the same chunk:

            api.mass_query({"prop": "info", "titles": titles}, "titles")

        When the ceiling is one of ``config.auto_max_ceilings``, other
        parameters whose name ends in "limit" are set to "max".

        Args:
            params: API parameters (not modified)
            fields: Name(s) of the multi-value field(s)
            apilimit: Ceiling per request (default: the client's apilimit)
            verbose: Whether to log an empty batch

        Returns:
            One outcome per chunk, in order: the response, or the ApiError
            the chunk failed with

        Raises:
            ApiError: "invalidlimit", "nonarray-exception", "emptyfield",
                "nomultivalue" or "nonindentical-arrays", before any request
                is sent
        """
        ceiling = self.apilimit if apilimit is None else apilimit
        if ceiling < 1:
            raise ApiError(INVALID_LIMIT, f"apilimit must be at least 1, got {ceiling}")

        params = dict(params)
        if isinstance(fields, str):
            fields = [fields]
        fields = [f for f in fields if f]
        auto_max = ceiling in self.config.auto_max_ceilings

        non_array = []
        field_values = []
        for key, value in list(params.items()):
            if key in fields:
                if is_multivalue(value):
                    field_values.append([multivalue_item(v) for v in value])
                else:
                    non_array.append(f'"{key}"')
            elif auto_max and key.endswith("limit"):
                params[key] = "max"

        if non_array:
            raise ApiError(
                NONARRAY_EXCEPTION,
                f"The value(s) for {', '.join(non_array)} must be arrays",
            )
        if not fields:
            raise ApiError(EMPTY_FIELD, 'The "fields" parameter is empty')
        if not field_values:
            raise ApiError(
                NO_MULTIVALUE,
                "There's no multi-value field (check for typos in parameter keys?)",
            )
        first = field_values[0]
        if any(values != first for values in field_values[1:]):
            raise ApiError(NONIDENTICAL_ARRAYS, "The multi-value fields must all have the same array")

        if not first:
            if verbose:
                self.logger.info("An empty array has been passed for the batch operation")
            return []

        batches = []
        for start in range(0, len(first), ceiling):
            multi_value = "|".join(first[start:start + ceiling])
            batch = dict(params)
            for key in fields:
                batch[key] = multi_value
            batches.append(batch)

        self.logger.debug(f"Mass query: {len(first)} value(s) in {len(batches)} request(s)")

        workers = min(len(batches), self.config.max_workers)
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(self.post, batch) for batch in batches]

        results: list = []
        for future in futures:
            try:
                results.append(future.result())
            except ApiError as err:
                results.append(err)
        return results

    # ----------------------------------------------------------------- tokens

    def get_token(
        self,
        token_type: Union[str, TokenType],
        additional_params: Optional[Union[ApiParams, str]] = None,
    ) -> str:
        """
        Get a token for a certain action, from the cache if possible.

        A fetch refreshes every token type at once.

        Args:
            token_type: Token name, like "csrf" (legacy names map to csrf)
            additional_params: Extra API parameters; a string is taken as
                the ``assert`` parameter

        Raises:
            ApiError: "badnamedtoken" if the token is unknown or missing
                from the response, "ok-but-empty" if the response has no
                tokens, or any error of the request itself
        """
        token_type = canonical_token_type(token_type)
        cached = self.tokens.get(token_type)
        if cached:
            return cached

        if isinstance(additional_params, str):
            additional_params = {"assert": additional_params}
        params: ApiParams = {"meta": "tokens", "type": "*"}
        params.update(additional_params or {})

        data = self.get(params)
        query = data.get("query")
        tokens = query.get("tokens") if isinstance(query, dict) else None
        if not tokens:
            raise ApiError(OK_BUT_EMPTY, "OK response but empty result")

        self.tokens.replace(tokens)
        token = tokens.get(token_type.response_key)
        if not token:
            raise ApiError(
                BAD_NAMED_TOKEN,
                f'Could not find a token named "{token_type.value}" (check for typos?)',
            )
        return token

    def bad_token(self, token_type: Union[str, TokenType]) -> None:
        """
        Mark the cached token for an action as bad, so the next get_token() refetches it.

        post_with_token() does this automatically on a "badtoken" error.
        """
        self.tokens.invalidate(canonical_token_type(token_type))

    def post_with_token(
        self,
        token_type: Union[str, TokenType],
        params: ApiParams,
        **options: Any,
    ) -> dict:
        """
        POST with a token of the given type.

        The cached token is used if there is one. If the API rejects it with
        "badtoken", the cache entry is dropped, a fresh token fetched and
        the request sent once more; the outcome of that retry is final.

            api.post_with_token("csrf", {
                "action": "options",
                "optionname": "gender",
                "optionvalue": "female",
            })

        Raises:
            ApiError: see ajax() and get_token()
        """
        token_type = canonical_token_type(token_type)
        params = dict(params)
        assert_params = {
            "assert": params.get("assert"),
            "assertuser": params.get("assertuser"),
        }

        params["token"] = self.get_token(token_type, assert_params)
        try:
            return self.post(params, **options)
        except ApiError as err:
            if err.code != BAD_TOKEN:
                raise

        self.logger.info(f"Cached {token_type.value} token was rejected; retrying with a new one")
        self.bad_token(token_type)
        params["token"] = self.get_token(token_type, assert_params)
        return self.post(params, **options)

    def post_with_edit_token(self, params: ApiParams, **options: Any) -> dict:
        """POST with a csrf token. See post_with_token()."""
        return self.post_with_token(TokenType.CSRF, params, **options)

    def get_edit_token(self) -> str:
        return self.get_token(TokenType.CSRF)

    # ---------------------------------------------------------------- editing

    def create(
        self,
        title: str,
        params: ApiParams,
        content: str,
        assert_user: bool = False,
    ) -> dict:
        """
        Create a new page (fails if it already exists).

        Args:
            title: Page title
            params: Additional parameters for action=edit (e.g., summary)
            content: Page content
            assert_user: Whether to add assert=user
        """
        edit_params: ApiParams = {
            "action": "edit",
            "title": str(title),
            "text": content,
            "createonly": True,
            "assert": "user" if assert_user else None,
        }
        edit_params.update(params)
        return self.post_with_edit_token(edit_params)

    def edit(
        self,
        title: str,
        transform: Callable[[dict], Union[str, ApiParams]],
    ) -> dict:
        """
        Edit an existing page. (To create a new page, use create().)

        The latest revision is fetched and passed to ``transform`` as
        ``{"timestamp": ..., "content": ...}``. A string result becomes the
        new text; a dict is merged into the action=edit parameters:

            api.edit("Sandbox", lambda rev: rev["content"].replace("foo", "bar"))

        Raises:
            ApiError: "invalidtitle", "nocreate-missing", "ok-but-empty",
                or any error of the requests
        """
        title = str(title)
        data = self.get({
            "prop": "revisions",
            "rvprop": "content|timestamp",
            "rvslots": "main",
            "titles": title,
            "curtimestamp": True,
        })

        pages = (data.get("query") or {}).get("pages")
        if not pages:
            raise ApiError(OK_BUT_EMPTY, "OK response but empty result")
        page = pages[0]
        if page.get("invalidreason"):
            raise ApiError(INVALID_TITLE, page["invalidreason"])
        if page.get("missing"):
            raise ApiError(NOCREATE_MISSING, "The requested page does not exist")

        revisions = page.get("revisions") or []
        revision = revisions[0] if revisions else {}
        basetimestamp = revision.get("timestamp")
        content = ((revision.get("slots") or {}).get("main") or {}).get("content")
        if not basetimestamp or content is None:
            raise ApiError(OK_BUT_EMPTY, "OK response but empty result")

        result = transform({"timestamp": basetimestamp, "content": content})
        edit_params = result if isinstance(result, dict) else {"text": str(result)}

        params: ApiParams = {
            "action": "edit",
            "title": title,
            "assert": None if self.anon else "user",
            "basetimestamp": basetimestamp,
            "starttimestamp": data.get("curtimestamp"),
            "nocreate": True,
        }
        params.update(edit_params)
        return self.post_with_edit_token(params)

    def new_section(
        self,
        title: str,
        header: str,
        content: str,
        additional_params: Optional[ApiParams] = None,
    ) -> dict:
        """Add a new section to a page."""
        params: ApiParams = {
            "action": "edit",
            "section": "new",
            "title": str(title),
            "sectiontitle": header,
            "text": content,
        }
        params.update(additional_params or {})
        return self.post_with_edit_token(params)

    # ---------------------------------------------------------------- queries

    def get_user_info(self, assert_user: bool = False, verbose: bool = True) -> Optional[dict]:
        """
        Get the current user's groups and rights.

        Returns:
            The ``query.userinfo`` object, or None on failure
        """
        try:
            data = self.get({
                "meta": "userinfo",
                "uiprop": "groups|rights",
                "assert": "user" if assert_user else None,
            })
            user_info = (data.get("query") or {}).get("userinfo")
            if not user_info:
                raise ApiError(OK_BUT_EMPTY, "OK response but empty result")
        except ApiError as err:
            if verbose:
                self.logger.warning(f"Failed to fetch user information: {err}")
            return None
        return user_info

    def is_category(self, title: str, verbose: bool = True) -> Optional[bool]:
        """Check if a title is an existing category. Returns None on failure."""
        try:
            data = self.get({"prop": "categoryinfo", "titles": str(title)})
        except ApiError as err:
            if verbose:
                self.logger.warning(f"Failed to check category {title}: {err}")
            return None
        pages = (data.get("query") or {}).get("pages") or []
        return bool(pages and pages[0].get("categoryinfo"))

    def get_categories(self, title: str, verbose: bool = True) -> Optional[list[str]]:
        """
        Get the categories a page belongs to.

        Args:
            title: Page title
            verbose: Whether to log failures

        Returns:
            Category titles (empty for an uncategorized page), or None on failure
        """
        try:
            data = self.get({
                "prop": "categories",
                "titles": str(title),
                "cllimit": "max",
            })
            pages = (data.get("query") or {}).get("pages")
            if not pages:
                raise ApiError(OK_BUT_EMPTY, "OK response but empty result")
            page = pages[0]
            if page.get("invalidreason"):
                raise ApiError(INVALID_TITLE, page["invalidreason"])
            if page.get("missing"):
                raise ApiError(PAGE_MISSING, "The requested page does not exist")
        except ApiError as err:
            if verbose:
                self.logger.warning(f"Failed to fetch categories of {title}: {err}")
            return None
        return [cat["title"] for cat in page.get("categories", [])]
