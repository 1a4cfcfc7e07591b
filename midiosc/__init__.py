"""Bridge MIDI controllers to OSC-controlled applications such as Ableton Live."""
