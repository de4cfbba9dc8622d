"""
Stream Store - Sole owner of stream records and their indices

Records live in an id-keyed arena. Two indices list stream ids per sender
and per (sender, recipient) pair. Index lists are unordered sets: deletion
swaps the last id into the removed slot and pops, so callers must never
rely on their order.
"""

from ubi_ledger.kernel.errors import StreamNotFound
from ubi_ledger.stream.models import Stream, StreamTable


def _swap_remove(ids: list[int], stream_id: int) -> None:
    """Remove stream_id from ids in O(1) after lookup; order not preserved"""
    index = ids.index(stream_id)
    ids[index] = ids[-1]
    ids.pop()


class StreamStore:
    """
    Create, look up and delete streams in a StreamTable

    The store never validates business rules; the lifecycle engine does
    that before calling create().
    """

    def __init__(self, table: StreamTable) -> None:
        self.table = table

    def create(
        self,
        sender: str,
        recipient: str,
        rate_per_second: int,
        start_time: int,
        stop_time: int,
    ) -> Stream:
        """Allocate the next id, store the record and index it"""
        stream_id = self.table.prev_stream_id + 1
        stream = Stream(
            stream_id=stream_id,
            sender=sender,
            recipient=recipient,
            rate_per_second=rate_per_second,
            start_time=start_time,
            stop_time=stop_time,
        )
        self.table.streams[stream_id] = stream
        self.table.by_sender.setdefault(sender, []).append(stream_id)
        self.table.by_pair.setdefault(sender, {}).setdefault(recipient, []).append(stream_id)
        self.table.prev_stream_id = stream_id
        return stream

    def get(self, stream_id: int) -> Stream | None:
        return self.table.streams.get(stream_id)

    def require(self, stream_id: int) -> Stream:
        """
        Get a live stream

        Raises:
            StreamNotFound: If the id was never allocated or was deleted
        """
        stream = self.table.streams.get(stream_id)
        if stream is None:
            raise StreamNotFound(stream_id)
        return stream

    def exists(self, stream_id: int) -> bool:
        return stream_id in self.table.streams

    def set_checkpoint(self, stream_id: int, timestamp: int) -> None:
        self.require(stream_id).accrued_checkpoint = timestamp

    def delete(self, stream_id: int) -> Stream:
        """
        Remove a stream record and its index entries

        Raises:
            StreamNotFound: If the stream does not exist
        """
        stream = self.require(stream_id)
        del self.table.streams[stream_id]

        sender_ids = self.table.by_sender[stream.sender]
        _swap_remove(sender_ids, stream_id)
        if not sender_ids:
            del self.table.by_sender[stream.sender]

        recipients = self.table.by_pair[stream.sender]
        pair_ids = recipients[stream.recipient]
        _swap_remove(pair_ids, stream_id)
        if not pair_ids:
            del recipients[stream.recipient]
        if not recipients:
            del self.table.by_pair[stream.sender]

        return stream

    def stream_ids_of(self, sender: str) -> list[int]:
        """Ids of the sender's live streams (unordered)"""
        return list(self.table.by_sender.get(sender, []))

    def streams_of(self, sender: str) -> list[Stream]:
        return [self.table.streams[i] for i in self.table.by_sender.get(sender, [])]

    def pair_streams(self, sender: str, recipient: str) -> list[Stream]:
        """Live streams from sender to recipient"""
        ids = self.table.by_pair.get(sender, {}).get(recipient, [])
        return [self.table.streams[i] for i in ids]

    def count(self, sender: str) -> int:
        return len(self.table.by_sender.get(sender, []))

    def __len__(self) -> int:
        return len(self.table.streams)
