# -*- coding: utf-8 -*-

from __future__ import annotations

import json
import unittest
from unittest import mock

import httpx

from nutriclinic.config import settings
from nutriclinic.errors import FunctionInvocationError
from nutriclinic.functions.client import invoke


class TestFunctionsClient(unittest.TestCase):
    def setUp(self) -> None:
        patcher_url = mock.patch.object(settings, "functions_url", "https://fn.example.com")
        patcher_key = mock.patch.object(settings, "functions_key", "service-key")
        patcher_url.start()
        patcher_key.start()
        self.addCleanup(patcher_url.stop)
        self.addCleanup(patcher_key.stop)

    def test_unwraps_data_envelope(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"data": {"userId": "p-1"}})

        result = invoke(
            "create-patient",
            {"email": "a@b.com", "metadata": {"name": "Ana"}},
            transport=httpx.MockTransport(handler),
        )
        self.assertEqual(result, {"userId": "p-1"})
        self.assertEqual(str(seen[0].url), "https://fn.example.com/functions/v1/create-patient")
        self.assertEqual(seen[0].headers["authorization"], "Bearer service-key")
        self.assertEqual(json.loads(seen[0].content)["email"], "a@b.com")

    def test_plain_body_is_returned_as_is(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"userId": "p-2"}))
        self.assertEqual(invoke("create-patient", {}, transport=transport), {"userId": "p-2"})

    def test_error_in_2xx_envelope_is_logical(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"error": "Email already registered"}))
        with self.assertRaises(FunctionInvocationError) as ctx:
            invoke("create-patient", {}, transport=transport)
        self.assertTrue(ctx.exception.logical)
        self.assertEqual(ctx.exception.message, "Email already registered")

    def test_http_error_status(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(500, text="boom"))
        with self.assertRaises(FunctionInvocationError) as ctx:
            invoke("create-patient", {}, transport=transport)
        self.assertFalse(ctx.exception.logical)
        self.assertEqual(ctx.exception.status_code, 500)
        self.assertEqual(ctx.exception.message, "boom")

    def test_transport_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        with self.assertRaises(FunctionInvocationError):
            invoke("create-patient", {}, transport=httpx.MockTransport(handler))

    def test_unconfigured_endpoint(self) -> None:
        with mock.patch.object(settings, "functions_url", None):
            with self.assertRaises(FunctionInvocationError):
                invoke("create-patient", {})


if __name__ == "__main__":
    unittest.main()
