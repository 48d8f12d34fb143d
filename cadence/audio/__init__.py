"""Audio capture and pitch-estimation backends.

These modules import sounddevice, soundfile and aubio; import them directly
(``cadence.audio.audio_input``) so the tracking core stays usable without an
audio stack.
"""
