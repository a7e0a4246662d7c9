SPRITE_VERT = r"""
#version 330 core
layout(location = 0) in vec3 inPos;
uniform mat4 uViewProj;
uniform float uSize;
uniform float uScale;
uniform float uMaxSize;
void main() {
    gl_Position = uViewProj * vec4(inPos, 1.0);
    gl_PointSize = clamp(uSize * uScale / gl_Position.w, 1.0, uMaxSize);
}
"""

SPRITE_FRAG = r"""
#version 330 core
uniform sampler2D uSprite;
uniform vec3 uColor;
uniform float uOpacity;
out vec4 FragColor;
void main() {
    float a = texture(uSprite, gl_PointCoord).a * uOpacity;
    FragColor = vec4(uColor, a);
}
"""

FS_TRI_VERT = r"""
#version 330 core
out vec2 vUV;
void main() {
    vec2 p;
    if (gl_VertexID == 0) p = vec2(-1.0, -1.0);
    else if (gl_VertexID == 1) p = vec2( 3.0, -1.0);
    else p = vec2(-1.0,  3.0);
    vUV = 0.5 * (p + 1.0);
    gl_Position = vec4(p, 0.0, 1.0);
}
"""

COPY_FRAG = r"""
#version 330 core
in vec2 vUV;
out vec4 FragColor;
uniform sampler2D uTex;
void main() { FragColor = vec4(texture(uTex, vUV).rgb, 1.0); }
"""

HIGHPASS_FRAG = r"""
#version 330 core
in vec2 vUV;
out vec4 FragColor;
uniform sampler2D uTex;
uniform float uThreshold;
uniform float uSmoothWidth;
void main() {
    vec3 c = texture(uTex, vUV).rgb;
    float lum = dot(c, vec3(0.299, 0.587, 0.114));
    float a = smoothstep(uThreshold, uThreshold + uSmoothWidth, lum);
    FragColor = vec4(c * a, 1.0);
}
"""

BLUR_FRAG = r"""
#version 330 core
in vec2 vUV;
out vec4 FragColor;
uniform sampler2D uTex;
uniform vec2 uStep;
uniform int uRadius;
uniform float uSigma;
void main() {
    vec3 acc = vec3(0.0);
    float wsum = 0.0;
    for (int i = -uRadius; i <= uRadius; ++i) {
        float x = float(i) / uSigma;
        float w = exp(-0.5 * x * x);
        acc += w * texture(uTex, vUV + float(i) * uStep).rgb;
        wsum += w;
    }
    FragColor = vec4(acc / wsum, 1.0);
}
"""

BLOOM_COMPOSITE_FRAG = r"""
#version 330 core
in vec2 vUV;
out vec4 FragColor;
uniform sampler2D uBase;
uniform sampler2D uMip0;
uniform sampler2D uMip1;
uniform sampler2D uMip2;
uniform sampler2D uMip3;
uniform sampler2D uMip4;
uniform float uWeights[5];
uniform float uStrength;
void main() {
    vec3 bloom = uWeights[0] * texture(uMip0, vUV).rgb
               + uWeights[1] * texture(uMip1, vUV).rgb
               + uWeights[2] * texture(uMip2, vUV).rgb
               + uWeights[3] * texture(uMip3, vUV).rgb
               + uWeights[4] * texture(uMip4, vUV).rgb;
    FragColor = vec4(texture(uBase, vUV).rgb + uStrength * bloom, 1.0);
}
"""

AFTERIMAGE_FRAG = r"""
#version 330 core
in vec2 vUV;
out vec4 FragColor;
uniform sampler2D uNew;
uniform sampler2D uOld;
uniform float uDamp;
uniform float uCutoff;
void main() {
    vec4 texNew = texture(uNew, vUV);
    vec4 texOld = texture(uOld, vUV);
    texOld *= uDamp * max(sign(texOld - vec4(uCutoff)), 0.0);
    FragColor = max(texNew, texOld);
}
"""

PRESENT_FRAG = r"""
#version 330 core
in vec2 vUV;
out vec4 FragColor;
uniform sampler2D uTex;
void main() { FragColor = vec4(clamp(texture(uTex, vUV).rgb, 0.0, 1.0), 1.0); }
"""
