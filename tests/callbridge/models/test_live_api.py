from callbridge.models.live_api import (
    AutomaticActivityDetection,
    Blob,
    ClientContent,
    ClientContentMessage,
    Content,
    LiveServerMessage,
    LiveSetup,
    Part,
    RealtimeInput,
    RealtimeInputMessage,
    SetupMessage,
)


def test_setup_message_omits_unset_fields():
    wire = SetupMessage(setup=LiveSetup(model="models/test")).to_wire()

    assert wire == {
        "setup": {
            "model": "models/test",
            "generationConfig": {"responseModalities": ["AUDIO"]},
        }
    }


def test_activity_detection_accepts_enum_strings():
    detection = AutomaticActivityDetection(
        startOfSpeechSensitivity="START_SENSITIVITY_LOW",
        endOfSpeechSensitivity="END_SENSITIVITY_LOW",
    )

    assert detection.to_wire() == {
        "startOfSpeechSensitivity": "START_SENSITIVITY_LOW",
        "endOfSpeechSensitivity": "END_SENSITIVITY_LOW",
    }


def test_client_content_wire_format():
    wire = ClientContentMessage(
        clientContent=ClientContent(
            turns=[Content(role="user", parts=[Part(text="hello")])], turnComplete=True
        )
    ).to_wire()

    assert wire == {
        "clientContent": {
            "turns": [{"role": "user", "parts": [{"text": "hello"}]}],
            "turnComplete": True,
        }
    }


def test_realtime_input_wire_format():
    wire = RealtimeInputMessage(
        realtimeInput=RealtimeInput(
            mediaChunks=[Blob(mimeType="audio/pcm;rate=16000", data="AAAA")]
        )
    ).to_wire()

    assert wire == {
        "realtimeInput": {
            "mediaChunks": [{"mimeType": "audio/pcm;rate=16000", "data": "AAAA"}]
        }
    }


def test_server_content_inline_audio():
    message = LiveServerMessage.model_validate(
        {
            "serverContent": {
                "modelTurn": {
                    "parts": [
                        {"inlineData": {"mimeType": "audio/pcm;rate=24000", "data": "UklG"}},
                        {"text": "ignored"},
                    ]
                },
                "turnComplete": True,
            }
        }
    )

    assert message.serverContent.inline_audio() == "UklG"
    assert message.serverContent.turnComplete is True


def test_server_content_without_audio():
    message = LiveServerMessage.model_validate(
        {"serverContent": {"modelTurn": {"parts": [{"text": "thinking"}]}}}
    )

    assert message.serverContent.inline_audio() is None
    assert LiveServerMessage.model_validate({"serverContent": {}}).serverContent.inline_audio() is None


def test_unknown_server_fields_are_ignored():
    message = LiveServerMessage.model_validate(
        {"setupComplete": {}, "sessionResumptionUpdate": {"newHandle": "abc"}}
    )

    assert message.setupComplete == {}
    assert message.serverContent is None


def test_go_away_parsed():
    message = LiveServerMessage.model_validate({"goAway": {"timeLeft": "10s"}})

    assert message.goAway.timeLeft == "10s"
