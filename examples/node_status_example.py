#!/usr/bin/env python3
"""
Example of reading chain status and following new blocks.
"""
import asyncio
import os

from hera_client import AergoClient, FunctionCall, HeraError, get_transport


async def main():
    """
    Demonstrate usage of the AergoClient against a running node.

    This example shows how to:
    1. Connect to a node
    2. Read the chain status and the best block
    3. Look up an account
    4. Call a read-only contract function
    5. Follow new blocks for a few seconds
    """
    NODE_URL = os.environ.get("HERA_NODE_URL", "localhost:7845")
    ACCOUNT = os.environ.get("ACCOUNT")
    CONTRACT = os.environ.get("CONTRACT")

    async with AergoClient(get_transport(NODE_URL)) as client:
        status = await client.blockchain()
        print(f"Best block: {status.best_height} ({status.best_block_hash})")
        print(f"Chain id hash: {await client.get_chain_id_hash('base58')}")

        block = await client.get_block(status.best_height)
        print(f"Block {block.header.block_no} has {len(block.txs)} transactions")

        if ACCOUNT:
            state = await client.get_state(ACCOUNT)
            print(f"{ACCOUNT}: balance={state.balance} aer, nonce={state.nonce}")

        if CONTRACT:
            try:
                result = await client.query_contract(FunctionCall(CONTRACT, "get", []))
                print(f"Contract returned: {result}")
            except HeraError as e:
                print(f"Contract query failed: {e}")

        stream = client.get_block_stream()
        stream.on("data", lambda b: print(f"New block {b.header.block_no}"))
        stream.on("error", lambda e: print(f"Stream error: {e}"))
        await asyncio.sleep(5)
        stream.cancel()
        await stream.wait_closed()


if __name__ == "__main__":
    asyncio.run(main())
