import logging
from typing import Tuple

from OpenGL import GL
from OpenGL.error import GLError

from backend.errors import AllocationError

logger = logging.getLogger(__name__)


class GLTextureApi:
    """
    The OpenGL calls the pipeline needs, issued through PyOpenGL.
    Every method requires the widget's GL context to be current.
    """
    target = GL.GL_TEXTURE_2D

    # ---------- Context ----------
    @staticmethod
    def version() -> Tuple[int, int]:
        raw = GL.glGetString(GL.GL_VERSION) or b"0.0"
        text = raw.decode(errors="replace") if isinstance(raw, bytes) else str(raw)
        parts = text.split()[0].split(".")
        try:
            return int(parts[0]), int(parts[1]) if len(parts) > 1 else 0
        except ValueError:
            return 0, 0

    @staticmethod
    def setup() -> None:
        GL.glClearColor(0, 0, 0, 0)
        GL.glDisable(GL.GL_DEPTH_TEST)
        GL.glShadeModel(GL.GL_FLAT)
        GL.glDisable(GL.GL_LIGHTING)

    @staticmethod
    def viewport(width: int, height: int) -> None:
        GL.glViewport(0, 0, width, height)
        GL.glMatrixMode(GL.GL_PROJECTION)
        GL.glLoadIdentity()
        GL.glMatrixMode(GL.GL_MODELVIEW)
        GL.glLoadIdentity()

    @staticmethod
    def finish() -> None:
        GL.glFinish()

    # ---------- Textures ----------
    def create_texture(self, width: int, height: int) -> int:
        """
        Allocates an RGBA8 texture with linear filtering.
        Raises AllocationError (and frees the texture name) if GL reports an error.
        """
        tex = int(GL.glGenTextures(1))
        try:
            GL.glBindTexture(self.target, tex)
            GL.glTexImage2D(self.target, 0, GL.GL_RGBA8, width, height, 0,
                            GL.GL_RGBA, GL.GL_UNSIGNED_BYTE, None)
            err = GL.glGetError()
            if err != GL.GL_NO_ERROR:
                raise AllocationError("Out of video memory", int(err))
            GL.glTexParameteri(self.target, GL.GL_TEXTURE_MIN_FILTER, GL.GL_LINEAR)
            GL.glTexParameteri(self.target, GL.GL_TEXTURE_MAG_FILTER, GL.GL_LINEAR)
        except GLError as e:
            self.delete_texture(tex)
            raise AllocationError(f"Out of video memory: {e}", getattr(e, "err", None)) from e
        except AllocationError:
            self.delete_texture(tex)
            raise
        finally:
            GL.glBindTexture(self.target, 0)
        return tex

    @staticmethod
    def delete_texture(texture_id: int) -> None:
        GL.glDeleteTextures([texture_id])

    # ---------- Presentation ----------
    @staticmethod
    def clear() -> None:
        GL.glClear(GL.GL_COLOR_BUFFER_BIT | GL.GL_DEPTH_BUFFER_BIT)
        GL.glMatrixMode(GL.GL_MODELVIEW)
        GL.glLoadIdentity()

    def draw_fullscreen_quad(self, texture_id: int) -> None:
        """Fill the viewport with a single textured quad; texel row 0 at the top."""
        GL.glEnable(self.target)
        GL.glBindTexture(self.target, texture_id)
        GL.glColor3f(1.0, 1.0, 1.0)
        GL.glBegin(GL.GL_QUADS)
        GL.glTexCoord2f(0.0, 1.0); GL.glVertex3f(-1.0, -1.0, -1.0)
        GL.glTexCoord2f(0.0, 0.0); GL.glVertex3f(-1.0, 1.0, -1.0)
        GL.glTexCoord2f(1.0, 0.0); GL.glVertex3f(1.0, 1.0, -1.0)
        GL.glTexCoord2f(1.0, 1.0); GL.glVertex3f(1.0, -1.0, -1.0)
        GL.glEnd()
        GL.glBindTexture(self.target, 0)
        GL.glDisable(self.target)
