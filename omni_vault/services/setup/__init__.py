"""Setup (provisioning) services.

Helpers that *provision* the cloud tier (Terraform) or *verify* the whole
vault end to end (local lock semantics, replication, WORM protection).
"""
