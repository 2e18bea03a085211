"""scmrelay: normalise SCM pull-request webhooks into one event stream.

Webhooks from GitHub and Bitbucket are verified at the gateway, queued on
RabbitMQ, normalised by per-provider adapters, and delivered to a downstream
HTTP sink.
"""
