# secure_exam/utils/qr.py
import base64
import io

import qrcode


def qr_data_url(data, width=300, margin=2):
    """PNG data URL for `data`, roughly `width` pixels wide."""
    qr = qrcode.QRCode(border=margin)
    qr.add_data(data)
    qr.make(fit=True)
    modules = qr.modules_count + 2 * margin
    qr.box_size = max(1, width // modules)

    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")
