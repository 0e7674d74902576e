"""Sample file."""

import asyncio
import logging

from aiortc import RTCPeerConnection

from pynodedss import AiortcPeer, NodeDssSignaler, SignalerConfig, TickTransport
from pynodedss.event import EVENT_DIAGNOSTIC

# Address of a running node-dss server.
server_address = "http://127.0.0.1:3000/"


async def main() -> None:
    """Run main function."""
    logging.basicConfig(level=logging.INFO)

    # Create two peers that negotiate with each other through the relay.
    alice = AiortcPeer(RTCPeerConnection())
    alice.pc.createDataChannel("chat")
    bob = AiortcPeer(RTCPeerConnection())

    connected = asyncio.Event()

    @bob.pc.on("datachannel")
    def on_datachannel(channel) -> None:  # type: ignore[no-untyped-def]
        print(f"Bob received data channel {channel.label}")
        connected.set()

    alice_signaler = NodeDssSignaler(
        alice, SignalerConfig(server_address, "alice", "bob")
    )
    bob_signaler = NodeDssSignaler(bob, SignalerConfig(server_address, "bob", "alice"))
    for signaler in (alice_signaler, bob_signaler):
        signaler.on(EVENT_DIAGNOSTIC, lambda diagnostic: print(diagnostic.message))

    transports = [TickTransport(), TickTransport()]
    try:
        async with alice_signaler, bob_signaler:
            await transports[0].start(alice_signaler)
            await transports[1].start(bob_signaler)

            # Alice offers; Bob answers automatically once his poll picks it up.
            await alice.create_offer()
            await asyncio.wait_for(connected.wait(), timeout=30)
            print("Connected")

            await transports[0].stop(alice_signaler)
            await transports[1].stop(bob_signaler)
    finally:
        await alice.close()
        await bob.close()


if __name__ == "__main__":
    asyncio.run(main())
