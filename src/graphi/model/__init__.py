"""
The MODEL layer contains pure data structures and loading logic.
It has NO knowledge of the GUI (Qt) or of the layout simulation.
It deals with Papers, Citations and I/O.
"""
