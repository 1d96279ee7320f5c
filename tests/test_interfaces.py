import inspect

import pytest

from capture.camera_device import CameraDevice
from capture.stream_provider import StreamProvider
from monitoring.message_stream import MessageStream


@pytest.mark.parametrize("interface", [CameraDevice, StreamProvider, MessageStream])
def test_interfaces_are_abstract(interface) -> None:
    assert inspect.isabstract(interface)
    with pytest.raises(TypeError):
        interface()
