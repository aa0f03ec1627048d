"""EVM chain integration components."""

from ftso_indexer.chain.decoder import decode_log
from ftso_indexer.chain.directory import ContractDirectoryResolver
from ftso_indexer.chain.fetcher import LogFetcher
from ftso_indexer.chain.rpc import JsonRpcNode

__all__ = ["decode_log", "ContractDirectoryResolver", "LogFetcher", "JsonRpcNode"]
