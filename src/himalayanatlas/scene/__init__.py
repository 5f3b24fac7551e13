"""
The SCENE layer turns the model into 3D geometry: the terrain field, the
marker set, the orbit camera and ray picking. It uses PyVista meshes but no Qt.
"""
