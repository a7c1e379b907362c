from django.http import HttpResponse


def api_playground(request):
    html = '''<!doctype html>
<html>
  <head>
    <meta charset="utf-8" />
    <title>Checkout Playground</title>
    <style>body{font-family:system-ui,Arial;margin:20px} textarea{width:100%;height:110px} input{width:80px}</style>
  </head>
  <body>
    <h2>EV Rental Settlement Playground</h2>
    <p>Manual calls against the checkout and payment endpoints. No external CDN.</p>

    <h3>Rental <input id="rental_id" value="1" /></h3>
    <button onclick="call('GET', '/api/v1/rentals/'+v('rental_id')+'/checkout-info')">Checkout info</button>

    <h4>PUT checkout-normal</h4>
    <textarea id="normal_body">{"mileage":1050,"battery_level":80,"exterior_condition":"good","interior_condition":"good"}</textarea>
    <button onclick="call('PUT', '/api/v1/rentals/'+v('rental_id')+'/checkout-normal', 'normal_body')">Checkout (no fees)</button>

    <h4>PUT checkout-fees</h4>
    <textarea id="fees_body">{"mileage":1050,"battery_level":80,"exterior_condition":"good","interior_condition":"fair","late_fee":50000,"damage_fee":150000,"other_fees":0,"payment_method":"vnpay"}</textarea>
    <button onclick="call('PUT', '/api/v1/rentals/'+v('rental_id')+'/checkout-fees', 'fees_body')">Checkout with fees</button>

    <h3>POST /api/v1/payments</h3>
    <textarea id="payment_body">{"booking_id":1,"payment_type":"deposit","payment_method":"cash"}</textarea>
    <p>Idempotency-Key: <input id="idempotency" style="width:200px" /></p>
    <button onclick="call('POST', '/api/v1/payments', 'payment_body', true)">Create payment</button>

    <h3>Payment <input id="payment_id" value="1" /></h3>
    <button onclick="call('PUT', '/api/v1/payments/'+v('payment_id')+'/confirm', null)">Confirm cash</button>
    <button onclick="call('PUT', '/api/v1/payments/'+v('payment_id')+'/cancel', 'cancel_body')">Cancel</button>
    <button onclick="call('PUT', '/api/v1/payments/'+v('payment_id')+'/method', 'method_body')">Change method</button>
    <textarea id="cancel_body">{"reason":"Customer paid at another station"}</textarea>
    <textarea id="method_body">{"payment_method":"vnpay"}</textarea>

    <h3>Response</h3>
    <pre id="out"></pre>

    <script>
    function v(id){ return document.getElementById(id).value }
    async function call(method, path, bodyId, includeIdempotency){
      const out = document.getElementById('out');
      out.textContent = '...loading';
      const headers = {'Content-Type':'application/json'};
      let body = undefined;
      if(bodyId){
        try{ body = JSON.stringify(JSON.parse(v(bodyId))); }catch(e){ out.textContent = 'Invalid JSON body'; return }
      }else if(method !== 'GET'){ body = '{}' }
      if(includeIdempotency){ const k = v('idempotency'); if(k) headers['Idempotency-Key']=k }
      try{
        const resp = await fetch(path, {method, headers, body});
        const text = await resp.text();
        out.textContent = 'Status: '+resp.status+'\\n'+text;
      }catch(e){ out.textContent = 'Fetch error: '+e }
    }
    </script>
  </body>
</html>
'''
    return HttpResponse(html)
