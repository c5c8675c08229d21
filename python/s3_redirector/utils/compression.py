"""ストリームをgzip圧縮しながら読み出すラッパー"""
import io
import zlib
from typing import BinaryIO


GZIP_WBITS = 16 + zlib.MAX_WBITS  # gzipヘッダ・トレーラ付き
DEFAULT_CHUNK_SIZE = 64 * 1024  # 64KB


class GzipStream(io.RawIOBase):
    """読み出し時に少しずつ圧縮する読み取り専用ストリーム

    元ストリームを全部メモリに載せることはなく、read() の要求分だけ
    元ストリームから読み進める。read(n) は圧縮データが尽きない限り
    ちょうど n バイトを返すので、マルチパートの各パートは満杯になる。
    """

    def __init__(self, source: BinaryIO, compresslevel: int = zlib.Z_DEFAULT_COMPRESSION,
                 chunk_size: int = DEFAULT_CHUNK_SIZE):
        super().__init__()
        self._source = source
        self._read_source = getattr(source, "read1", source.read)
        self._chunk_size = chunk_size
        self._compressor = zlib.compressobj(compresslevel, zlib.DEFLATED, GZIP_WBITS)
        self._buffer = bytearray()
        self._finished = False

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return False

    def _fill(self, size: int) -> None:
        while not self._finished and (size < 0 or len(self._buffer) < size):
            chunk = self._read_source(self._chunk_size)
            if chunk:
                self._buffer += self._compressor.compress(chunk)
            else:
                self._buffer += self._compressor.flush()
                self._finished = True

    def read(self, size: int = -1) -> bytes:
        if self.closed:
            raise ValueError("I/O operation on closed stream")
        if size is None:
            size = -1
        self._fill(size)

        if size < 0 or size > len(self._buffer):
            size = len(self._buffer)
        data = bytes(self._buffer[:size])
        del self._buffer[:size]
        return data

    def readall(self) -> bytes:
        return self.read(-1)

    def readinto(self, b) -> int:
        data = self.read(len(b))
        n = len(data)
        b[:n] = data
        return n

    def close(self) -> None:
        if not self.closed:
            self._buffer.clear()
            self._source.close()
        super().close()
