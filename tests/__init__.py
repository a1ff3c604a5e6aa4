# SPDX-License-Identifier: Apache-2.0
"""
Casper SDK Tests

Client tests run against an in-memory Casper server (HTTP via
httpx.MockTransport, matrix uploads via an in-process grpc.aio server).
"""
